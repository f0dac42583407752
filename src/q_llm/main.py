"""CLI entrypoint for q."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from q_llm import __version__
from q_llm.commands import NoMatchError
from q_llm.config import ConfigError
from q_llm.context import ContextError
from q_llm.controllers import (
    AskCommand,
    QueryCliController,
    SetKeyCommand,
    SetModelCommand,
    SetProviderCommand,
    SuggestCommand,
)
from q_llm.engine.errors import QueryCancelled, QueryError
from q_llm.engine.models import ProviderId, Verbosity
from q_llm.log import configure_logging

click.rich_click.USE_MARKDOWN = True
CANCELLED_EXIT_CODE = 130
CONTROLLER = QueryCliController()
PROVIDER_CHOICE = click.Choice([provider.value for provider in ProviderId], case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="q")
@click.option("--debug", is_flag=True, default=False, help="Verbose logging on stderr.")
def q(debug: bool) -> None:
    """Ask an LLM from the command line."""

    configure_logging(debug=debug)


@q.command("ask")
@click.argument("prompt")
@click.option("--provider", "-P", type=PROVIDER_CHOICE, default=None, help="LLM provider.")
@click.option("--model", "-M", default=None, help="Model name; defaults to the configured one.")
@click.option(
    "--detail",
    "-d",
    type=click.Choice([level.value for level in Verbosity], case_sensitive=False),
    default=Verbosity.CONCISE.value,
    show_default=True,
    help="Response detail level.",
)
@click.option(
    "--stream/--no-stream",
    "streaming",
    default=None,
    help="Show the answer while it arrives (default from Q_LLM_STREAMING).",
)
@click.option("--no-cache", is_flag=True, default=False, help="Skip the in-process cache.")
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=None,
    help="Total attempts per query (default from Q_LLM_MAX_RETRIES).",
)
@click.option("--hist", "-H", is_flag=True, default=False, help="Include recent shell history.")
@click.option("--here", "-D", is_flag=True, default=False, help="Include the directory listing.")
@click.option(
    "--file",
    "-F",
    "files",
    multiple=True,
    type=click.Path(path_type=Path, dir_okay=False),
    help="Include a file's content. Can be repeated.",
)
def ask(  # noqa: PLR0913
    prompt: str,
    provider: str | None,
    model: str | None,
    detail: str,
    streaming: bool | None,
    no_cache: bool,
    retries: int | None,
    hist: bool,
    here: bool,
    files: tuple[Path, ...],
) -> None:
    """Send PROMPT to the configured LLM and print the answer."""

    with _user_errors():
        lines = CONTROLLER.ask(
            AskCommand(
                prompt=prompt,
                provider=provider,
                model=model,
                verbosity=Verbosity(detail.lower()),
                streaming=streaming,
                use_cache=not no_cache,
                max_retries=retries,
                include_history=hist,
                include_directory=here,
                files=files,
            ),
        )
    _emit_lines(lines)


@q.command("suggest")
@click.argument("query")
def suggest_command(query: str) -> None:
    """Suggest command-line tools for QUERY without calling an LLM."""

    with _user_errors():
        lines = CONTROLLER.suggest(SuggestCommand(query=query))
    _emit_lines(lines)


@q.command("set-key")
@click.argument("provider", type=PROVIDER_CHOICE)
@click.argument("key")
def set_key(provider: str, key: str) -> None:
    """Store the API KEY for PROVIDER in the config file."""

    with _user_errors():
        lines = CONTROLLER.set_key(SetKeyCommand(provider=provider, key=key))
    _emit_lines(lines)


@q.command("set-provider")
@click.argument("provider", type=PROVIDER_CHOICE)
def set_provider(provider: str) -> None:
    """Make PROVIDER the default."""

    with _user_errors():
        lines = CONTROLLER.set_provider(SetProviderCommand(provider=provider))
    _emit_lines(lines)


@q.command("set-model")
@click.argument("provider", type=PROVIDER_CHOICE)
@click.argument("model")
def set_model(provider: str, model: str) -> None:
    """Use MODEL whenever PROVIDER is queried."""

    with _user_errors():
        lines = CONTROLLER.set_model(SetModelCommand(provider=provider, model=model))
    _emit_lines(lines)


@q.command("show-config")
def show_config() -> None:
    """Print the effective configuration with API keys masked."""

    with _user_errors():
        lines = CONTROLLER.show_config()
    _emit_lines(lines)


@contextmanager
def _user_errors() -> Iterator[None]:
    try:
        yield
    except QueryCancelled:
        click.echo("Cancelled.", err=True)
        click.get_current_context().exit(CANCELLED_EXIT_CODE)
    except (QueryError, ConfigError, ContextError, NoMatchError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    q()

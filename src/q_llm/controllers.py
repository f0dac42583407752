"""Controllers for q CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from q_llm.commands import suggest as suggest_tools
from q_llm.config import ConfigError, ConfigStore, Settings, parse_provider
from q_llm.context import (
    ContextSettings,
    build_prompt,
    list_directory,
    read_file,
    read_history,
)
from q_llm.engine.cache import ResultCache
from q_llm.engine.engine import QueryEngine, SurfaceFactory
from q_llm.engine.models import ProviderId, QueryRequest, Verbosity
from q_llm.formatting import format_markdown
from q_llm.providers import DEFAULT_MODELS, build_provider
from q_llm.sanitization import mask_secret

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AskCommand:
    """CLI input for one LLM query."""

    prompt: str
    provider: str | None = None
    model: str | None = None
    verbosity: Verbosity = Verbosity.CONCISE
    streaming: bool | None = None
    use_cache: bool = True
    max_retries: int | None = None
    include_history: bool = False
    include_directory: bool = False
    files: tuple[Path, ...] = ()


@dataclass(slots=True)
class SuggestCommand:
    """CLI input for static tool suggestions."""

    query: str


@dataclass(slots=True)
class SetKeyCommand:
    """CLI input for storing an API key."""

    provider: str
    key: str


@dataclass(slots=True)
class SetProviderCommand:
    """CLI input for changing the default provider."""

    provider: str


@dataclass(slots=True)
class SetModelCommand:
    """CLI input for pinning a provider's model."""

    provider: str
    model: str


class QueryCliController:
    """Coordinates configuration, context collection and query execution for the CLI."""

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        surface_factory: SurfaceFactory | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self._transport = transport
        self._surface_factory = surface_factory
        self._cache = cache

    def ask(self, command: AskCommand) -> list[str]:
        if not command.prompt.strip():
            raise ConfigError("Prompt must not be empty.")
        settings = Settings.from_env()
        if command.max_retries is not None:
            settings.engine.max_retries = command.max_retries
        settings.validate()

        provider_id = (
            parse_provider(command.provider)
            if command.provider
            else settings.default_provider_id()
        )
        prompt = build_prompt(command.prompt, self._collect_context(command))
        streaming = settings.engine.streaming if command.streaming is None else command.streaming
        if self._cache is None:
            self._cache = ResultCache(
                ttl_seconds=settings.engine.cache_ttl_seconds,
                max_entries=settings.engine.cache_max_entries,
            )

        with build_provider(
            provider_id,
            settings.provider,
            model=command.model,
            verbosity=command.verbosity,
            transport=self._transport,
        ) as provider:
            engine = QueryEngine(
                provider,
                cache=self._cache,
                settings=settings.engine,
                surface_factory=self._surface_factory,
            )
            result = engine.execute(
                QueryRequest(
                    prompt=prompt,
                    provider_id=provider_id,
                    model=provider.model,
                    streaming=streaming,
                    use_cache=command.use_cache,
                    max_retries=settings.engine.max_retries,
                ),
            )
        logger.debug("Answer ready (cached=%s, attempts=%d)", result.from_cache, result.attempts)
        return [format_markdown(result.text)]

    def suggest(self, command: SuggestCommand) -> list[str]:
        return [suggest_tools(command.query)]

    def set_key(self, command: SetKeyCommand) -> list[str]:
        store = ConfigStore(Settings.from_env().config_path)
        provider_id = store.set_api_key(command.provider, command.key)
        return [f"API key for {provider_id.value} saved to {store.path}"]

    def set_provider(self, command: SetProviderCommand) -> list[str]:
        store = ConfigStore(Settings.from_env().config_path)
        provider_id = store.set_default_provider(command.provider)
        return [f"Default provider set to {provider_id.value}"]

    def set_model(self, command: SetModelCommand) -> list[str]:
        store = ConfigStore(Settings.from_env().config_path)
        provider_id = store.set_model(command.provider, command.model)
        return [f"Model for {provider_id.value} set to {command.model.strip()}"]

    def show_config(self) -> list[str]:
        settings = Settings.from_env()
        engine = settings.engine
        lines = [
            f"Config file: {settings.config_path}",
            f"Default provider: {settings.provider.default_provider}",
        ]
        for provider_id in ProviderId:
            model = settings.provider.model_for(provider_id)
            key = settings.provider.api_key_for(provider_id)
            lines.append(
                f"{provider_id.value}: "
                f"model={model or DEFAULT_MODELS[provider_id] + ' (default)'} "
                f"api_key={mask_secret(key) if key else 'not set'}",
            )
        lines.append(
            "Engine: "
            f"max_retries={engine.max_retries} "
            f"cache_ttl_seconds={engine.cache_ttl_seconds:g} "
            f"cache_max_entries={engine.cache_max_entries} "
            f"streaming={engine.streaming}",
        )
        return lines

    def _collect_context(self, command: AskCommand) -> list[str]:
        context_settings = ContextSettings()
        blocks: list[str] = []
        if command.include_history:
            blocks.append(read_history(context_settings))
        if command.include_directory:
            blocks.append(list_directory(Path.cwd(), context_settings))
        blocks.extend(read_file(path, context_settings) for path in command.files)
        return blocks


"""Formatted tool suggestions for a free-text query."""

from __future__ import annotations

import click

from q_llm.commands.matcher import find_matches
from q_llm.commands.models import CommandInfo, NoMatchError


def format_command(command: CommandInfo) -> str:
    lines = [
        click.style(command.name, fg="green", bold=True),
        f"Category: {click.style(command.category.value, fg='blue')}",
        command.description,
    ]
    if command.examples:
        lines.extend(["", "Examples:"])
        lines.extend(f"  {click.style(example, fg='yellow')}" for example in command.examples)
    return "\n".join(lines)


def format_suggestions(commands: list[CommandInfo]) -> str:
    if not commands:
        return click.style("No matching commands found.", fg="red")
    if len(commands) == 1:
        header = "Found the perfect tool for you:"
    else:
        header = f"Found {len(commands)} relevant tools:"
    body = "\n\n---\n\n".join(format_command(command) for command in commands)
    return f"{header}\n\n{body}"


def suggest(query: str) -> str:
    """Formatted suggestions for ``query``; raises NoMatchError when nothing scores."""

    matches = find_matches(query)
    if not matches:
        raise NoMatchError(query=query)
    return format_suggestions(matches)

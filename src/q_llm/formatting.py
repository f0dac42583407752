"""Light markdown styling for answers printed to a terminal."""

from __future__ import annotations

import click

_FENCE = "```"


def format_markdown(text: str) -> str:
    """Color fenced code, bold ``**lines**`` and bullet ``* items``; other lines pass through."""

    lines: list[str] = []
    code: list[str] = []
    in_code = False
    for line in text.splitlines():
        if line.startswith(_FENCE):
            if in_code and code:
                lines.append(click.style("\n".join(code), fg="cyan"))
                code.clear()
            in_code = not in_code
            continue
        if in_code:
            code.append(line)
        elif len(line) > 4 and line.startswith("**") and line.endswith("**"):  # noqa: PLR2004
            lines.append(click.style(line[2:-2], bold=True))
        elif line.startswith("* "):
            lines.append(click.style(f"• {line[2:]}", fg="yellow"))
        else:
            lines.append(line)
    if code:
        lines.append(click.style("\n".join(code), fg="cyan"))
    return "\n".join(lines)

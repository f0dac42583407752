"""Content of a single file given with ``--file``."""

from __future__ import annotations

from pathlib import Path

from q_llm.context.base import ContextSettings, check_size, os_error


def read_file(path: Path, settings: ContextSettings) -> str:
    try:
        size = path.stat().st_size
        check_size(size, settings.max_size, "File content")
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as error:
        raise os_error(error, path) from error
    return f"File: {path}\nSize: {size} bytes\n\nContent:\n{content}"

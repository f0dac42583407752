"""Listing of the current directory tree."""

from __future__ import annotations

import os
from pathlib import Path

from q_llm.context.base import ContextSettings, check_size, os_error


def list_directory(path: Path, settings: ContextSettings) -> str:
    """Relative paths below ``path`` up to ``max_depth`` levels, sorted per directory."""

    root = path.resolve()
    if not root.is_dir():
        raise os_error(FileNotFoundError(str(root)), root)

    header = f"Directory listing for {root}:\n"
    total = len(header.encode("utf-8"))
    entries: list[str] = []

    def _raise(error: OSError) -> None:
        raise os_error(error, Path(error.filename or root))

    for current, dirnames, filenames in os.walk(root, onerror=_raise, followlinks=False):
        current_path = Path(current)
        depth = len(current_path.relative_to(root).parts)
        if not settings.include_hidden:
            dirnames[:] = [name for name in dirnames if not name.startswith(".")]
            filenames = [name for name in filenames if not name.startswith(".")]
        dirnames.sort()
        for name in sorted([*dirnames, *filenames]):
            entry = f"{(current_path / name).relative_to(root).as_posix()}\n"
            total += len(entry.encode("utf-8"))
            check_size(total, settings.max_size, "Directory listing")
            entries.append(entry)
        if depth + 1 >= settings.max_depth:
            dirnames[:] = []

    return header + "".join(entries)

"""Recent shell commands from the user's history file."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from q_llm.context.base import ContextError, ContextErrorCode, ContextSettings, check_size, os_error

logger = logging.getLogger(__name__)

_ZSH_EXTENDED_PREFIX = re.compile(r"^: \d+:\d+;")
_HISTORY_CANDIDATES = (".zsh_history", ".bash_history")


def find_history_file() -> Path:
    """``$HISTFILE`` if set, otherwise the first existing zsh or bash history."""

    histfile = os.getenv("HISTFILE", "").strip()
    if histfile:
        path = Path(histfile).expanduser()
        if path.is_file():
            return path
    home = Path.home()
    for name in _HISTORY_CANDIDATES:
        path = home / name
        if path.is_file():
            return path
    raise ContextError(message="Shell history file not found", code=ContextErrorCode.HISTORY)


def read_history(settings: ContextSettings, history_path: Path | None = None) -> str:
    """Return the most recent commands, newest first, under a header."""

    path = history_path or find_history_file()
    try:
        raw = path.read_bytes()
    except OSError as error:
        raise os_error(error, path) from error

    commands: list[str] = []
    for line in reversed(raw.decode("utf-8", errors="replace").splitlines()):
        command = _ZSH_EXTENDED_PREFIX.sub("", line).strip()
        if not command:
            continue
        commands.append(command)
        if len(commands) >= settings.history_lines:
            break
    logger.debug("Read %d history entries from %s", len(commands), path)

    output = "Recent shell history:\n" + "".join(f"{command}\n" for command in commands)
    check_size(len(output.encode("utf-8")), settings.max_size, "Shell history")
    return output

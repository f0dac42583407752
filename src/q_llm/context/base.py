"""Shared settings, errors and prompt assembly for context collectors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

DEFAULT_MAX_SIZE = 1024 * 1024


class ContextErrorCode(str, Enum):
    """Why a context block could not be collected."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    TOO_LARGE = "too_large"
    HISTORY = "history"
    IO = "io"


@dataclass(slots=True)
class ContextError(Exception):
    """Context collection failure with a stable code."""

    message: str
    code: ContextErrorCode

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class ContextSettings:
    """Limits applied to every collector."""

    max_size: int = DEFAULT_MAX_SIZE
    include_hidden: bool = False
    max_depth: int = 3
    history_lines: int = 100


def check_size(size: int, max_size: int, label: str) -> None:
    if size > max_size:
        raise ContextError(
            message=f"{label} size {size} exceeds maximum {max_size}",
            code=ContextErrorCode.TOO_LARGE,
        )


def os_error(error: OSError, path: Path) -> ContextError:
    """Map an OSError raised for ``path`` to a ContextError."""

    if isinstance(error, FileNotFoundError):
        return ContextError(message=f"File not found: {path}", code=ContextErrorCode.NOT_FOUND)
    if isinstance(error, PermissionError):
        return ContextError(
            message=f"Permission denied: {path}",
            code=ContextErrorCode.PERMISSION_DENIED,
        )
    return ContextError(message=f"Cannot read {path}: {error}", code=ContextErrorCode.IO)


def build_prompt(prompt: str, blocks: Sequence[str]) -> str:
    """Prefix ``prompt`` with the gathered context blocks, if any."""

    gathered = [block.rstrip("\n") for block in blocks if block.strip()]
    if not gathered:
        return prompt
    context = "\n\n".join(gathered)
    return f"Context:\n{context}\n\nPrompt: {prompt}"

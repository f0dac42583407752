"""Prompt context collectors: shell history, directory listing and file content."""

from q_llm.context.base import (
    ContextError,
    ContextErrorCode,
    ContextSettings,
    build_prompt,
)
from q_llm.context.directory import list_directory
from q_llm.context.file import read_file
from q_llm.context.history import read_history

__all__ = [
    "ContextError",
    "ContextErrorCode",
    "ContextSettings",
    "build_prompt",
    "list_directory",
    "read_file",
    "read_history",
]

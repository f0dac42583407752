"""Command suggestion types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Tool categories used for matching and display."""

    SYSTEM = "System"
    NETWORK = "Network"
    FILE_SYSTEM = "File System"
    PROCESS = "Process"
    PERFORMANCE = "Performance"
    DEVELOPMENT = "Development"
    OTHER = "Other"


@dataclass(frozen=True, slots=True)
class CommandInfo:
    """One suggested command-line tool."""

    name: str
    description: str
    category: Category
    examples: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()


@dataclass(slots=True)
class NoMatchError(Exception):
    """No tool scored above zero for the query."""

    query: str

    def __str__(self) -> str:
        return f"No matching commands found for {self.query!r}."

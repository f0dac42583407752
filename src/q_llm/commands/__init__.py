"""Static command-line tool suggestions."""

from q_llm.commands.matcher import find_matches
from q_llm.commands.models import Category, CommandInfo, NoMatchError
from q_llm.commands.suggest import format_suggestions, suggest

__all__ = [
    "Category",
    "CommandInfo",
    "NoMatchError",
    "find_matches",
    "format_suggestions",
    "suggest",
]

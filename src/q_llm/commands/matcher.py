"""Keyword and category scoring of the command catalogue."""

from __future__ import annotations

import re
from collections.abc import Iterable

from q_llm.commands.database import COMMANDS
from q_llm.commands.models import Category, CommandInfo

NAME_SCORE = 100
CATEGORY_SCORE = 50
CATEGORY_HINT_SCORE = 40
KEYWORD_SCORE = 30
DESCRIPTION_SCORE = 20
DEFAULT_LIMIT = 3

_CATEGORY_HINTS: tuple[tuple[re.Pattern[str], Category], ...] = (
    (re.compile(r"profile|benchmark|time", re.IGNORECASE), Category.PERFORMANCE),
    (re.compile(r"monitor|process|cpu|memory", re.IGNORECASE), Category.PROCESS),
    (re.compile(r"disk|storage|space|file", re.IGNORECASE), Category.FILE_SYSTEM),
    (re.compile(r"network|ping|connection", re.IGNORECASE), Category.NETWORK),
    (re.compile(r"develop|code|program", re.IGNORECASE), Category.DEVELOPMENT),
)


def score_command(command: CommandInfo, query: str) -> int:
    query = query.strip().lower()
    if not query:
        return 0
    score = 0
    if query in command.name.lower():
        score += NAME_SCORE
    if query in command.category.value.lower():
        score += CATEGORY_SCORE
    score += KEYWORD_SCORE * sum(1 for keyword in command.keywords if keyword.lower() in query)
    if query in command.description.lower():
        score += DESCRIPTION_SCORE
    for pattern, category in _CATEGORY_HINTS:
        if command.category == category and pattern.search(query):
            score += CATEGORY_HINT_SCORE
    return score


def find_matches(
    query: str,
    limit: int = DEFAULT_LIMIT,
    commands: Iterable[CommandInfo] = COMMANDS,
) -> list[CommandInfo]:
    """Best-scoring commands first; ties broken by name."""

    scored = [(score_command(command, query), command) for command in commands]
    ranked = sorted(
        ((score, command) for score, command in scored if score > 0),
        key=lambda item: (-item[0], item[1].name),
    )
    return [command for _, command in ranked[:limit]]

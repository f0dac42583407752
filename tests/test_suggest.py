from __future__ import annotations

import allure
import click
import pytest

from q_llm.commands import (
    Category,
    CommandInfo,
    NoMatchError,
    find_matches,
    format_suggestions,
    suggest,
)
from q_llm.commands.database import get_command
from q_llm.commands.matcher import score_command

pytestmark = [
    allure.epic("Command Suggestions"),
    allure.feature("Matcher"),
]


def test_profiling_query_prefers_hyperfine() -> None:
    matches = find_matches("tool to profile execution time")

    assert matches[0].name == "hyperfine"


def test_disk_usage_query_finds_ncdu() -> None:
    matches = find_matches("analyze disk usage")

    assert matches[0].name == "ncdu"
    assert len(matches) <= 3


def test_unrelated_query_has_no_matches() -> None:
    assert find_matches("xyzabc123") == []


def test_name_match_outscores_keyword_match() -> None:
    hyperfine = get_command("hyperfine")
    assert hyperfine is not None

    by_name = score_command(hyperfine, "hyperfine")
    by_keyword_description_and_hint = score_command(hyperfine, "benchmark")
    by_keyword = score_command(hyperfine, "performance tool")

    assert by_name == 100
    assert by_keyword_description_and_hint == 90
    assert by_keyword == 30
    assert by_name > by_keyword_description_and_hint > by_keyword


def test_ties_are_ordered_by_name() -> None:
    matches = find_matches("search", limit=10)

    assert [command.name for command in matches] == ["fd", "fzf", "ripgrep"]


def test_format_single_suggestion() -> None:
    command = CommandInfo(
        name="test",
        description="A test command",
        category=Category.DEVELOPMENT,
        examples=("test example",),
        keywords=("test",),
    )

    text = click.unstyle(format_suggestions([command]))

    assert text.startswith("Found the perfect tool for you:\n\n")
    assert "Category: Development" in text
    assert "A test command" in text
    assert "  test example" in text


def test_format_many_suggestions_separates_entries() -> None:
    text = click.unstyle(format_suggestions(find_matches("search", limit=10)))

    assert text.startswith("Found 3 relevant tools:")
    assert text.count("\n---\n") == 2


def test_format_empty_suggestions() -> None:
    assert "No matching commands found." in click.unstyle(format_suggestions([]))


def test_suggest_raises_when_nothing_matches() -> None:
    with pytest.raises(NoMatchError, match="xyzabc123"):
        suggest("xyzabc123")

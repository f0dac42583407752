from __future__ import annotations

import allure
import click

from q_llm.formatting import format_markdown

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Answer Formatting"),
]


def test_plain_text_passes_through() -> None:
    assert format_markdown("just text\nsecond line") == "just text\nsecond line"


def test_code_fences_are_dropped_and_code_colored() -> None:
    formatted = format_markdown("Run:\n```bash\nls -la\npwd\n```\nDone")

    assert click.unstyle(formatted) == "Run:\nls -la\npwd\nDone"
    assert click.style("ls -la\npwd", fg="cyan") in formatted


def test_bold_lines_and_bullets() -> None:
    formatted = format_markdown("**Summary**\n* first\n* second")

    assert click.unstyle(formatted) == "Summary\n• first\n• second"
    assert click.style("Summary", bold=True) in formatted


def test_unterminated_code_block_is_kept() -> None:
    assert click.unstyle(format_markdown("```\necho hi")) == "echo hi"

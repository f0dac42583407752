from __future__ import annotations

import os
from pathlib import Path

import allure
import pytest

from q_llm.context import (
    ContextError,
    ContextErrorCode,
    ContextSettings,
    build_prompt,
    list_directory,
    read_file,
    read_history,
)

pytestmark = [
    allure.epic("Prompt Context"),
    allure.feature("History, Directory, File"),
]


def _write_zsh_history(path: Path) -> None:
    path.write_text(
        ": 1707000000:0;ls -la\n"
        ": 1707000001:0;git status\n"
        "\n"
        ": 1707000002:3;cargo build --release\n",
        "utf-8",
    )


def test_history_from_histfile_newest_first(tmp_path: Path, monkeypatch) -> None:
    history = tmp_path / "custom_history"
    _write_zsh_history(history)
    monkeypatch.setenv("HISTFILE", str(history))

    block = read_history(ContextSettings())

    assert block.splitlines() == [
        "Recent shell history:",
        "cargo build --release",
        "git status",
        "ls -la",
    ]


def test_history_respects_line_limit(tmp_path: Path) -> None:
    history = tmp_path / ".zsh_history"
    _write_zsh_history(history)

    block = read_history(ContextSettings(history_lines=2), history_path=history)

    assert block.splitlines()[1:] == ["cargo build --release", "git status"]


def test_history_falls_back_to_bash_history(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("HISTFILE", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".bash_history").write_text("make test\necho done\n", "utf-8")

    block = read_history(ContextSettings())

    assert block.splitlines()[1:] == ["echo done", "make test"]


def test_missing_history_is_reported(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("HISTFILE", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    with pytest.raises(ContextError) as exc_info:
        read_history(ContextSettings())

    assert exc_info.value.code == ContextErrorCode.HISTORY


def test_history_over_size_limit_is_rejected(tmp_path: Path) -> None:
    history = tmp_path / ".zsh_history"
    history.write_text(": 1707000000:0;" + "x" * 1000 + "\n", "utf-8")

    with pytest.raises(ContextError) as exc_info:
        read_history(ContextSettings(max_size=100), history_path=history)

    assert exc_info.value.code == ContextErrorCode.TOO_LARGE


def test_directory_listing_skips_hidden_entries(tmp_path: Path) -> None:
    (tmp_path / "subdir").mkdir()
    (tmp_path / "file1.txt").write_text("content", "utf-8")
    (tmp_path / "subdir" / "file2.txt").write_text("content", "utf-8")
    (tmp_path / ".hidden").write_text("content", "utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref", "utf-8")

    block = list_directory(tmp_path, ContextSettings(max_depth=2))

    assert block.splitlines()[1:] == ["file1.txt", "subdir", "subdir/file2.txt"]


def test_directory_listing_can_include_hidden_entries(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("X=1", "utf-8")

    block = list_directory(tmp_path, ContextSettings(include_hidden=True))

    assert ".env" in block.splitlines()


def test_directory_listing_stops_at_max_depth(tmp_path: Path) -> None:
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)
    (deep / "leaf.txt").write_text("x", "utf-8")

    block = list_directory(tmp_path, ContextSettings(max_depth=2))

    assert block.splitlines()[1:] == ["a", "a/b"]


def test_directory_listing_over_size_limit_is_rejected(tmp_path: Path) -> None:
    for index in range(100):
        (tmp_path / f"file{index}.txt").write_text("content", "utf-8")

    with pytest.raises(ContextError) as exc_info:
        list_directory(tmp_path, ContextSettings(max_size=200))

    assert exc_info.value.code == ContextErrorCode.TOO_LARGE


def test_read_file_includes_header_and_content(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("Test content\n", "utf-8")

    block = read_file(path, ContextSettings())

    assert block.startswith(f"File: {path}\nSize: 13 bytes\n\nContent:\n")
    assert "Test content" in block


def test_read_missing_file_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(ContextError) as exc_info:
        read_file(tmp_path / "nope.txt", ContextSettings())

    assert exc_info.value.code == ContextErrorCode.NOT_FOUND


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="root ignores file permissions",
)
def test_unreadable_file_is_permission_denied(tmp_path: Path) -> None:
    path = tmp_path / "secret.txt"
    path.write_text("x", "utf-8")
    path.chmod(0o000)

    with pytest.raises(ContextError) as exc_info:
        read_file(path, ContextSettings())

    assert exc_info.value.code == ContextErrorCode.PERMISSION_DENIED


def test_read_file_over_size_limit_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "big.txt"
    path.write_text("x" * 1000, "utf-8")

    with pytest.raises(ContextError, match="exceeds maximum 100") as exc_info:
        read_file(path, ContextSettings(max_size=100))

    assert exc_info.value.code == ContextErrorCode.TOO_LARGE


def test_build_prompt_without_context_is_unchanged() -> None:
    assert build_prompt("how do I list files?", []) == "how do I list files?"
    assert build_prompt("how do I list files?", ["  \n"]) == "how do I list files?"


def test_build_prompt_prefixes_context_blocks() -> None:
    prompt = build_prompt("what failed?", ["Recent shell history:\nmake\n", "File: x\n"])

    assert prompt == (
        "Context:\nRecent shell history:\nmake\n\nFile: x\n\nPrompt: what failed?"
    )

"""Built-in catalogue of command-line tools."""

from __future__ import annotations

from q_llm.commands.models import Category, CommandInfo

COMMANDS: tuple[CommandInfo, ...] = (
    CommandInfo(
        name="hyperfine",
        description=(
            "A command-line benchmarking tool that measures command execution time "
            "with statistical analysis"
        ),
        category=Category.PERFORMANCE,
        examples=("hyperfine 'sleep 0.3'", "hyperfine --warmup 3 'grep -R TODO ./'"),
        keywords=("benchmark", "performance", "timing", "profiling"),
    ),
    CommandInfo(
        name="htop",
        description="An interactive process viewer and system monitor",
        category=Category.PROCESS,
        examples=("htop", "htop -u username"),
        keywords=("process", "monitor", "cpu", "memory", "system"),
    ),
    CommandInfo(
        name="ncdu",
        description="NCurses Disk Usage - a disk usage analyzer with an ncurses interface",
        category=Category.FILE_SYSTEM,
        examples=("ncdu /home", "ncdu -x /"),
        keywords=("disk", "storage", "space", "usage", "files"),
    ),
    CommandInfo(
        name="mtr",
        description="A network diagnostic tool that combines ping and traceroute",
        category=Category.NETWORK,
        examples=("mtr google.com", "mtr --report example.com"),
        keywords=("network", "ping", "traceroute", "diagnostic"),
    ),
    CommandInfo(
        name="fd",
        description="A simple, fast and user-friendly alternative to find",
        category=Category.FILE_SYSTEM,
        examples=("fd pattern", "fd -e txt"),
        keywords=("find", "search", "files", "locate"),
    ),
    CommandInfo(
        name="ripgrep",
        description="An extremely fast alternative to grep that respects gitignore rules",
        category=Category.DEVELOPMENT,
        examples=("rg pattern", "rg -t py 'def main'"),
        keywords=("search", "grep", "code", "find"),
    ),
    CommandInfo(
        name="fzf",
        description="A command-line fuzzy finder",
        category=Category.PROCESS,
        examples=("fzf", "vim $(fzf)"),
        keywords=("search", "filter", "fuzzy", "find"),
    ),
)


def get_command(name: str) -> CommandInfo | None:
    for command in COMMANDS:
        if command.name == name:
            return command
    return None

"""Log utilities."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "q_llm"


def configure_logging(*, debug: bool = False) -> logging.Logger:
    """Route package logs through a stderr RichHandler; stdout stays reserved for answers."""

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.handlers = [
        RichHandler(
            console=Console(stderr=True),
            show_path=debug,
            rich_tracebacks=debug,
        ),
    ]
    logger.propagate = False
    return logger

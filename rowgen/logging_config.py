"""Logging configuration for rowgen.

Console output goes through rich; an optional plain-text file handler
captures everything at DEBUG level.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "rowgen"

FILE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the ``rowgen`` hierarchy.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        Logger whose records propagate to the ``rowgen`` root logger.
    """
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(
    level: int | str = logging.WARNING,
    log_file: str | Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``rowgen`` logger.

    Args:
        level: Console log level (name or number).
        log_file: Optional path of a log file; always written at DEBUG.
        console: Console used by the rich handler (stderr by default).

    Returns:
        The configured ``rowgen`` root logger.
    """
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric

    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(logging.DEBUG)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    root.debug("Logging initialized (level=%s)", logging.getLevelName(level))
    if log_file:
        root.debug("Log file: %s", log_file)

    return root

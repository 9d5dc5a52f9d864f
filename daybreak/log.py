"""
Logging configuration for Daybreak.

Module loggers live under the "daybreak" namespace. Nothing is configured
on import; hosts call setup_logging() (the CLI and API do).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Literal

ROOT_LOGGER = "daybreak"


class DaybreakFormatter(logging.Formatter):
    """Compact single-line formatter."""

    def __init__(self, include_timestamp: bool = True):
        self.include_timestamp = include_timestamp
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        parts = []

        if self.include_timestamp:
            parts.append(f"[{self.formatTime(record, '%Y-%m-%d %H:%M:%S')}]")

        parts.append(f"{record.levelname:8}")

        name = record.name
        if name.startswith(ROOT_LOGGER + "."):
            name = name[len(ROOT_LOGGER) + 1:]
        parts.append(f"[{name:20}]")

        parts.append(record.getMessage())

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " ".join(parts)


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    log_filename: str = "daybreak.log",
) -> logging.Logger:
    """
    Configure the "daybreak" logger tree.

    Args:
        level: Minimum log level to capture
        log_dir: Directory for a log file (no file output when None)
        console_output: Whether to log to stderr
        log_filename: Name of the log file

    Returns:
        The configured root "daybreak" logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(DaybreakFormatter(include_timestamp=False))
        root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path / log_filename, encoding="utf-8")
        file_handler.setFormatter(DaybreakFormatter())
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the "daybreak" namespace.

    Usage:
        logger = get_logger("engine_core.events")
        logger.info("Starting run")
    """
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")

"""Logging configuration for convergent.

The ``convergent`` logger carries only a ``NullHandler``, so nothing is
printed unless the application asks for it. The library logs garbage
collection at DEBUG and inconsistent reloaded state at WARNING::

    import convergent

    convergent.enable_console_logging(level="DEBUG")
    convergent.enable_file_logging("replica.log")

``configure_from_env()`` reads:
    CONVERGENT_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    CONVERGENT_LOG_FILE: Path of a rotating log file instead of stderr
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "set_level",
]

LOGGER_NAME = "convergent"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ROTATE_AT_BYTES = 5 * 1024 * 1024
ROTATED_FILES_KEPT = 3

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _get_level(level: str | int) -> int:
    """Map a level name to its constant; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _install(handler: logging.Handler, level: LogLevel | int, format: str) -> None:
    logger = _get_logger()
    numeric = _get_level(level)
    handler.setLevel(numeric)
    handler.setFormatter(logging.Formatter(format))
    logger.setLevel(numeric)
    logger.addHandler(handler)


def enable_console_logging(level: LogLevel | int = "INFO", format: str = DEFAULT_FORMAT) -> logging.StreamHandler:
    """Print convergent log records to stderr and return the handler."""
    handler = logging.StreamHandler()
    _install(handler, level, format)
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = ROTATE_AT_BYTES,
    backup_count: int = ROTATED_FILES_KEPT,
    format: str = DEFAULT_FORMAT,
) -> RotatingFileHandler:
    """Append convergent log records to ``path``, rotating it by size.

    Missing parent directories are created.

    Returns:
        The created RotatingFileHandler.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    _install(handler, level, format)
    return handler


def configure_from_env() -> None:
    """Enable logging from ``CONVERGENT_LOGGING`` and ``CONVERGENT_LOG_FILE``.

    Leaves logging untouched when neither variable is set.
    """
    level = os.environ.get("CONVERGENT_LOGGING", "")
    log_file = os.environ.get("CONVERGENT_LOG_FILE", "")
    if not level and not log_file:
        return
    if log_file:
        enable_file_logging(log_file, level=level or "INFO")
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    _get_logger().setLevel(_get_level(level))


def disable_logging() -> None:
    """Close every installed handler and silence the package logger."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)

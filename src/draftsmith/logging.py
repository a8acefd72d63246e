"""
Logging utilities for draftsmith.

Every module logs through a child of the ``draftsmith`` logger so callers can
tune the whole package from one place.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Package root logger
_root_logger = logging.getLogger("draftsmith")


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for draftsmith.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from draftsmith.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="draftsmith.log")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    if format is None:
        format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    formatter = logging.Formatter(format)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "generation", "storage")

    Returns:
        Logger instance
    """
    if name.startswith("draftsmith."):
        return logging.getLogger(name)
    return logging.getLogger(f"draftsmith.{name}")


def set_level(level: str | int) -> None:
    """Set the log level for draftsmith."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    _root_logger.setLevel(level)


def disable() -> None:
    """Disable all draftsmith logging."""
    _root_logger.disabled = True


def enable() -> None:
    """Re-enable draftsmith logging."""
    _root_logger.disabled = False

"""
Logging utilities for tarlink.

Graph and batching code logs through loggers in the ``tarlink`` namespace
and never configures handlers itself; only the CLI calls
:func:`setup_logging`. Until then every logger falls back to a
``NullHandler`` so library use stays silent.
"""

from __future__ import annotations

import os
import sys
import logging
import threading
from typing import IO, Optional

from tarlink.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

ROOT_LOGGER_NAME = "tarlink"

_logging_configured: bool = False
_lock = threading.Lock()


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str,
        *,
        datefmt: Optional[str] = None,
        stream: Optional[IO[str]] = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = stream_supports_color(stream or sys.stderr)

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname) if self.use_color else None
        if not color:
            return super().format(record)

        # Records are shared between handlers, so restore the plain name
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def stream_supports_color(stream: IO[str]) -> bool:
    """Return True if ``stream`` is a terminal and neither NO_COLOR nor CI is set."""
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return stream.isatty()
    except (AttributeError, OSError, ValueError):
        return False


def level_for_verbosity(verbosity: int) -> int:
    """Map a ``-v`` count to a logging level.

    Args:
        verbosity: Number of ``-v`` flags given on the command line.

    Returns:
        ``WARNING`` for 0, ``INFO`` for 1, ``DEBUG`` for 2 or more.
    """
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    *,
    level: int = logging.WARNING,
    verbose: bool = False,
    stream: Optional[IO[str]] = None,
) -> None:
    """Attach a single stream handler to the ``tarlink`` logger.

    Safe to call repeatedly; previous handlers are replaced.

    Args:
        level: Logging level for the ``tarlink`` hierarchy.
        verbose: Use the timestamped format including logger names.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    global _logging_configured

    target = stream or sys.stderr
    fmt = LOG_VERBOSE_FORMAT if verbose else LOG_DEFAULT_FORMAT

    with _lock:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        handler = logging.StreamHandler(target)
        handler.setLevel(level)
        handler.setFormatter(
            ColoredFormatter(fmt, datefmt=LOG_DATE_FORMAT, stream=target)
        )

        root_logger.addHandler(handler)
        root_logger.propagate = False
        _logging_configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger within the ``tarlink`` namespace.

    Args:
        name: Dotted suffix (``"core.graph"``) or a full ``tarlink.`` name.

    Returns:
        The namespaced logger.
    """
    if not name or name == ROOT_LOGGER_NAME:
        full_name = ROOT_LOGGER_NAME
    elif name.startswith(f"{ROOT_LOGGER_NAME}."):
        full_name = name
    else:
        full_name = f"{ROOT_LOGGER_NAME}.{name}"

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    return logging.getLogger(full_name)


def is_logging_configured() -> bool:
    """Return True once :func:`setup_logging` has run."""
    return _logging_configured

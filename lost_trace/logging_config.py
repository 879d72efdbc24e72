"""Logging configuration for the report correlation service.

Handlers live on a single package logger, ``lost_trace``. Module loggers are
its children and propagate to it, so level and destinations are decided in
one place (LOG_LEVEL / LOG_FILE) and apply to extraction, persistence and
linking alike.
"""

from __future__ import annotations

import copy
import logging
import sys
from typing import Optional, TextIO

PACKAGE_LOGGER = "lost_trace"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when its stream is a terminal.

    The record is copied before coloring so other handlers (the log file)
    still see plain text.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, fmt=None, datefmt=None, stream: Optional[TextIO] = None):
        super().__init__(fmt, datefmt=datefmt)
        self.stream = stream

    def use_color(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if color is None or not self.use_color():
            return super().format(record)

        record = copy.copy(record)
        record.levelname = f"{color}{self.BOLD}{record.levelname}{self.RESET}"
        return super().format(record)


def _resolve_settings(level: Optional[str], log_file: Optional[str]):
    if level is not None and log_file is not None:
        return level, log_file

    from lost_trace.config import get_config

    try:
        config = get_config()
    except ValueError:
        # Broken configuration is reported by whoever builds the service
        return level or "INFO", log_file

    return level or config.log_level, log_file or config.log_file


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the package logger once and return it.

    Args:
        level: Log level name. If None, LOG_LEVEL is read through Config.
        log_file: Also write plain-text logs here. If None, LOG_FILE is read
                  through Config.
        stream: Console stream, stdout by default.

    Returns:
        The ``lost_trace`` logger. Later calls return it unchanged.

    Example:
        >>> setup_logging(level="DEBUG")
        >>> get_logger(__name__).debug("Gallery scanned")
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers:
        return package_logger

    level, log_file = _resolve_settings(level, log_file)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    stream = stream or sys.stdout
    console = logging.StreamHandler(stream)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT, stream=stream))
    package_logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        package_logger.addHandler(file_handler)

    # Host applications keep their own root configuration
    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package logger.

    Module names inside the package are used as is; anything else (a script's
    ``__main__``) is nested under ``lost_trace`` so it shares the handlers.
    """
    setup_logging()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)

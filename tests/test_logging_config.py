"""Unit tests for logging configuration."""

from __future__ import annotations

import io
import logging

from lost_trace.logging_config import (
    DATE_FORMAT,
    LOG_FORMAT,
    PACKAGE_LOGGER,
    ColoredFormatter,
    get_logger,
    setup_logging,
)


class TtyStream(io.StringIO):
    def isatty(self):
        return True


def make_record(level=logging.ERROR, msg="Failed to link report"):
    return logging.LogRecord("lost_trace.store", level, __file__, 1, msg, None, None)


def test_module_loggers_share_package_handlers():
    """Test that module loggers propagate to the configured package logger."""
    package_logger = setup_logging()
    logger = get_logger("lost_trace.store")

    assert logger.name == "lost_trace.store"
    assert logger.handlers == []
    assert logger.propagate
    assert package_logger.name == PACKAGE_LOGGER
    assert package_logger.handlers
    assert not package_logger.propagate


def test_setup_logging_is_idempotent():
    """Test that repeated setup does not add handlers."""
    first = setup_logging()
    count = len(first.handlers)

    assert setup_logging(level="DEBUG") is first
    assert len(first.handlers) == count


def test_outside_names_are_nested():
    """Test that script loggers are placed under the package logger."""
    assert get_logger("__main__").name == "lost_trace.__main__"
    assert get_logger(PACKAGE_LOGGER).name == PACKAGE_LOGGER


def test_formatter_plain_when_not_a_terminal():
    """Test that no color codes are written to plain streams."""
    formatter = ColoredFormatter(LOG_FORMAT, DATE_FORMAT, stream=io.StringIO())

    line = formatter.format(make_record())

    assert "\033[" not in line
    assert "| ERROR" in line
    assert line.endswith("Failed to link report")


def test_formatter_colors_copy_of_record():
    """Test that coloring a terminal line leaves the record untouched."""
    formatter = ColoredFormatter(LOG_FORMAT, DATE_FORMAT, stream=TtyStream())
    record = make_record(logging.WARNING)

    line = formatter.format(record)

    assert "\033[33m" in line
    assert record.levelname == "WARNING"

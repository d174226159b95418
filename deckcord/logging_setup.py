"""Logging setup and utilities."""

import logging
import os
import sys
from typing import TextIO

__all__ = [
    "LogObjects",
    "add_log_file",
    "enable_debug",
    "get_logger",
    "init_logger",
    "is_debug",
    "set_debug",
    "should_colorize",
]

_ESC = "\x1b["
_RESET = f"{_ESC}0m"

# level -> ANSI codes
_LEVEL_STYLES = {
    logging.WARNING: "33;2",
    logging.ERROR: "31;2",
    logging.CRITICAL: "31;1",
}

FILE_LOG_FORMAT = r"%(asctime)s [%(levelname)s] %(name)s :: %(message)s :: %(filename)s:%(lineno)d"


class LogObjects:
    """Reusable objects for loggers."""

    handlers: list[logging.Handler] = []
    loggers: list[logging.Logger] = []
    # DEBUG in the environment turns it on at import time
    debug: bool = bool(os.environ.get("DEBUG"))


def is_debug() -> bool:
    return LogObjects.debug


def set_debug(value: bool) -> None:
    """Switch debug mode, affecting loggers and formatters created afterwards."""
    LogObjects.debug = value


def should_colorize(stream: TextIO | None = None) -> bool:
    """Determine if ANSI colors should be used for the given stream.

    Respects NO_COLOR, FORCE_COLOR and TTY detection.

    Args:
        stream: The output stream to check. Defaults to sys.stderr.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    if stream is None:
        stream = sys.stderr
    return hasattr(stream, "isatty") and stream.isatty()


class ScreenLogFormatter(logging.Formatter):
    """A custom formatter, adding colors based on log level."""

    def __init__(self) -> None:
        super().__init__()
        log_format = r"%(name)12s - %(message)s // %(filename)s:%(lineno)d" if is_debug() else r"%(message)s"
        use_colors = should_colorize()
        self._formatters: dict[int, logging.Formatter] = {}
        for level in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
            codes = _LEVEL_STYLES.get(level)
            if use_colors and codes:
                self._formatters[level] = logging.Formatter(f"{_ESC}{codes}m{log_format}{_RESET}")
            else:
                self._formatters[level] = logging.Formatter(log_format)

    def format(self, record: logging.LogRecord) -> str:
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        return formatter.format(record)


def init_logger(filename: str | None = None, force_debug: bool = False) -> None:
    """Initialize the logging system.

    Args:
        filename: Optional filename to log to
        force_debug: If True, force debug level
    """
    if force_debug:
        set_debug(True)

    LogObjects.handlers.clear()
    if filename:
        file_handler = logging.FileHandler(filename, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt=FILE_LOG_FORMAT))
        LogObjects.handlers.append(file_handler)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ScreenLogFormatter())
    LogObjects.handlers.append(stream_handler)


def add_log_file(filename: str) -> None:
    """Attach a file handler to the handlers set and to every logger created so far.

    Args:
        filename: The file to append logs to
    """
    file_handler = logging.FileHandler(filename, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt=FILE_LOG_FORMAT))
    LogObjects.handlers.append(file_handler)
    for logger in LogObjects.loggers:
        logger.addHandler(file_handler)


def enable_debug() -> None:
    """Switch debug mode on and lower every known logger to DEBUG."""
    set_debug(True)
    for logger in LogObjects.loggers:
        logger.setLevel(logging.DEBUG)


def get_logger(name: str = "deckcord", level: int | None = None) -> logging.Logger:
    """Return a named logger.

    Args:
        name (str): logger's name
        level (int): logger's level (auto if not set)

    Returns:
        The logger instance
    """
    logger = logging.getLogger(name)
    if level is None:
        logger.setLevel(logging.DEBUG if is_debug() else logging.WARNING)
    else:
        logger.setLevel(level)
    logger.propagate = False
    for handler in LogObjects.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    if logger not in LogObjects.loggers:
        LogObjects.loggers.append(logger)
    logger.info('Logger "%s" initialized', name)
    return logger

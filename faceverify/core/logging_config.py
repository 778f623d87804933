"""Logging configuration for the face verification pipeline.

All package modules log through children of the ``faceverify`` logger, which
owns the handlers: a colored console handler and, when LOG_FILE is set, a
plain file handler. Scripts get their own top-level logger with the same
format.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "faceverify"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter with colored level names (terminal only)."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, fmt: str, datefmt: Optional[str] = None, stream=None):
        super().__init__(fmt, datefmt=datefmt)
        self.stream = stream if stream is not None else sys.stdout

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, coloring the level when writing to a terminal."""
        if not (hasattr(self.stream, "isatty") and self.stream.isatty()):
            return super().format(record)

        # File handlers share the record, so color a copy
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{self.BOLD}{record.levelname}{self.RESET}"
            record.name = f"{self.BOLD}{record.name}{self.RESET}"
        return super().format(record)


def _settings_from_config() -> tuple[str, Optional[Path]]:
    """Level and log file from the environment, falling back to INFO/console."""
    from faceverify.core.config import get_config

    try:
        config = get_config()
    except ValueError:
        # Config errors are reported by whoever loads the config
        return "INFO", None
    return config.log_level, config.log_file


def setup_logging(
    name: str = PACKAGE_LOGGER,
    level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Setup and configure logger with consistent formatting.

    Args:
        name: Logger name ('faceverify' for the package, __name__ for scripts)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, reads LOG_LEVEL via Config.
        log_file: Optional file to also log to. If None, reads LOG_FILE.

    Returns:
        Configured logger instance. Calling again returns it unchanged.

    Example:
        >>> logger = setup_logging(__name__, level="DEBUG")
        >>> logger.info("Camera started")
        >>> logger.error("Verification failed", exc_info=True)
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    if level is None or log_file is None:
        config_level, config_file = _settings_from_config()
        level = level or config_level
        log_file = log_file or config_file

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get logger for a package module.

    The 'faceverify' logger is configured on first use; module loggers
    propagate to it and carry no handlers of their own.

    Args:
        name: Module name (typically __name__)
    """
    setup_logging(PACKAGE_LOGGER)
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return setup_logging(name)

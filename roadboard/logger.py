"""
Logging configuration for Roadboard.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "roadboard"


def setup_logger(
    name: str = LOGGER_NAME,
    log_level: str = "WARNING",
    log_file: Optional[str] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Setup logger with console and optional file handlers.

    Args:
        name: Logger name
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to a log file. If None, no file handler is installed
        console_output: Whether to output to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        # Size-based rotating file handler (1 MB, keep 3 backups)
        file_handler = RotatingFileHandler(log_path, maxBytes=1024 * 1024, backupCount=3, encoding='utf-8')
        file_handler.setLevel(logger.level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logger.level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    logger.debug(f"Logger initialized at level {log_level}")
    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get logger instance by name.

    Module loggers (``roadboard.managers.x``) propagate to the package logger,
    which is configured by setup_logger().
    """
    return logging.getLogger(name)

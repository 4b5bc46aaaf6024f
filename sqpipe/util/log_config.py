"""
Logging configuration for sqpipe.

All diagnostics go to stderr; stdout carries row data only. Module loggers
are children of the tool logger and inherit its level and handlers.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "sqpipe"


def setup_logger(name: str) -> logging.Logger:
    """
    Return the logger for a module (typically called with __name__).

    Handlers are attached once to the tool logger by `configure_logging`.
    """
    return logging.getLogger(name)


def configure_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    timestamps: bool = False
) -> logging.Logger:
    """
    Configure and return the tool logger with consistent formatting.

    Args:
        level: Logging level (default: WARNING)
        log_file: Optional file path for log output
        timestamps: Prefix stderr records with a timestamp (debug tracing)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    if timestamps:
        console_formatter = logging.Formatter(
            fmt='%(asctime)s [%(levelname)s] %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        console_formatter = logging.Formatter(fmt='[%(levelname)s] %(message)s')
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)

        file_formatter = logging.Formatter(
            fmt='%(asctime)s [%(levelname)s] %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger

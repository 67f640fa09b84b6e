"""Logging setup for learnchain."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "learnchain"
LOG_FILENAME = "learnchain-debug.log"


def get_logger(
    name: str = LOGGER_NAME, log_file: Optional[Path] = None, level: int = logging.INFO
) -> logging.Logger:
    """Get a configured logger for learnchain.

    Args:
        name: Logger name (the package logger by default, so module loggers propagate to it)
        log_file: Optional file to append logs to
        level: Logging level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler goes to stderr so it does not mix with rendered output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level if level <= logging.DEBUG else logging.WARNING)
    logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning("Cannot open debug log %s: %s", log_file, e)
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger

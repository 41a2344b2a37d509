"""
Logging setup for BlazePose command line tools

Library modules only create module loggers; handlers are attached here,
once, by applications.
"""

import logging
import sys
from typing import Optional

from .config import LoggingConfig


def setup_logging(
    config: Optional[LoggingConfig] = None,
    name: str = "blazepose"
) -> logging.Logger:
    """
    Configure and return the package logger

    Args:
        config: LoggingConfig (defaults to INFO on stdout)
        name: Logger name to configure

    Returns:
        Configured logger instance
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(name)

    level = getattr(logging, config.level.upper(), logging.INFO)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=config.format, datefmt=config.date_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

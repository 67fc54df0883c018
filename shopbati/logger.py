"""Logging configuration for the storefront backend."""

import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure the shared loguru logger.

    Args:
        log_level: Minimum level for every sink
        log_file: Optional path of a rotating log file

    Returns:
        logger: The configured loguru logger
    """
    # Remove any existing handlers
    logger.remove()

    logger.add(
        sys.stderr,
        level=log_level,
        format=LOG_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="1 week",
            compression="gz",
        )

    return logger


__all__ = ["logger", "setup_logger"]

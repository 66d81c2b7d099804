"""
Logging utilities for SecureChain
"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: str = "text",
    rotation: Union[str, int] = "100 MB",
    retention: Union[str, int] = 5,
) -> None:
    """
    Set up logger configuration

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file
        log_format: "text" for human readable lines, "json" for serialized records
        rotation: When the log file is rotated, e.g. "100 MB"
        retention: How many rotated files (or how long) to keep
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=DEFAULT_FORMAT, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            serialize=log_format == "json",
        )

    logger.debug(f"Logging configured at {level}" + (f", writing to {log_file}" if log_file else ""))


def setup_logger_from_settings(settings) -> None:
    """Configure logging from a Settings object or its Box view"""
    setup_logger(
        level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE or None,
        log_format=settings.LOG_FORMAT,
        rotation=f"{settings.MAX_LOG_SIZE_MB} MB",
        retention=settings.LOG_RETENTION,
    )

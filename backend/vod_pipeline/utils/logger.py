"""
Logging Configuration

Centralized logging setup for the API and the worker.
"""
import logging
import sys
from typing import Union


def setup_logger(name: str = "vod_pipeline", level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Setup and configure logger

    Args:
        name: Logger name (child modules using logging.getLogger(__name__) inherit it)
        level: Logging level name or number

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger

"""
Logging setup for the application.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from .resource_loader import get_cache_dir

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO,
                      log_file: Optional[Union[str, Path]] = None,
                      to_cache: bool = False) -> logging.Logger:
    """
    Configure the ``fillsign`` logger hierarchy.

    Args:
        level: Logging level name or number
        log_file: Optional explicit log file path
        to_cache: Also log to ``fillsign.log`` in the user cache directory

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("fillsign")
    logger.setLevel(level)

    # Re-configuring replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is None and to_cache:
        log_file = get_cache_dir() / "fillsign.log"

    if log_file is not None:
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger

"""
Logging setup for the backend.
"""

import logging
import sys
from typing import Optional

from ..config import settings


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        level: Logging level name, defaults to settings.LOG_LEVEL

    Returns:
        The package root logger
    """
    logger = logging.getLogger("megachat")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    # Prevent adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger

# utils/logger.py
"""
Shared logger

Every module logs through this single named logger.
"""

import logging
import sys

from utils.config import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str = "favorite_places") -> logging.Logger:
    """Configure and return the application logger."""
    settings = get_settings()
    log = logging.getLogger(name)

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        log.addHandler(handler)

    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    return log


logger = setup_logger()

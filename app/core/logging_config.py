"""
Logging setup - one stdout handler for every "eventcal.*" logger.

Modules create their own named logger:

    logger = logging.getLogger("eventcal.services.cache")

and main.py calls configure_logging() once at import time. Handlers are only
attached the first time, so reloads (uvicorn --reload, tests) don't duplicate
output.
"""

import logging
import sys
from typing import Optional

from app.core.config import settings


ROOT_LOGGER_NAME = "eventcal"

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the application logger tree.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)

    Returns:
        The "eventcal" root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger

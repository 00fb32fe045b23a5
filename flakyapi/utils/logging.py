# =============================================
# File: flakyapi/utils/logging.py
# Purpose: Console/file logging configuration (loguru)
# =============================================
from __future__ import annotations
import sys

from loguru import logger

from flakyapi.utils.settings import Settings


def configure_logging(settings: Settings) -> None:
    """Reset loguru sinks: stderr always, rotating file when LOG_FILE is set."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")

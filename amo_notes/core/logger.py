# amo_notes/core/logger.py

import logging
import os
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"

logger = logging.getLogger("amo_notes")
logger.propagate = False  # Prevent log duplication


def configure_logging(level: str = "INFO") -> None:
    """Attach the stdout handler once and (re)apply the level, e.g. from settings.LOG_LEVEL."""
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


configure_logging(os.getenv("LOG_LEVEL", "INFO"))

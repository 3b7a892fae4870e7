# amo_notes/utils/fallback.py

from typing import Callable, TypeVar

from amo_notes.core.logger import logger
from amo_notes.utils.errors import AmoError

T = TypeVar("T")


def best_effort(call: Callable[[], T], default: T, what: str) -> T:
    """
    Run an enrichment call; on an amoCRM error log it and return the default.
    Used wherever one failed lookup must not abort the rest of a webhook.
    """
    try:
        return call()
    except AmoError as e:
        logger.error(f"{what} failed: {e}")
        return default

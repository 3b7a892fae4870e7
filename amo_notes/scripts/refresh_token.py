# amo_notes/scripts/refresh_token.py
"""
Refresh the stored amoCRM token pair. Meant for cron:

    python -m amo_notes.scripts.refresh_token

Exits with status 1 when the refresh fails; there is no retry.
"""
import sys

from amo_notes.core.config import get_settings
from amo_notes.core.logger import logger
from amo_notes.services.http_client import HttpClient
from amo_notes.services.oauth import OAuthManager
from amo_notes.services.token_store import TokenStore
from amo_notes.utils.errors import AmoError


def refresh_tokens() -> int:
    try:
        settings = get_settings()
        oauth = OAuthManager(
            settings.oauth,
            HttpClient(timeout=settings.HTTP_TIMEOUT_SECONDS),
            TokenStore(settings.AMO_TOKEN_PATH),
        )
        tokens = oauth.refresh()
    except AmoError as e:
        logger.error(f"Token refresh failed: {e}")
        return 1

    logger.info(f"Token refresh successful (expires in {tokens.expires_in or 'n/a'}s)")
    return 0


if __name__ == "__main__":
    sys.exit(refresh_tokens())

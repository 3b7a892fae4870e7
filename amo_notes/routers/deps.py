# amo_notes/routers/deps.py

from functools import lru_cache

from fastapi import Depends

from amo_notes.core.config import Settings, get_settings
from amo_notes.services.amocrm import AmoApiClient
from amo_notes.services.dedup import Deduplicator
from amo_notes.services.event_diff import EventDiffEngine, LinkedObjectNameResolver
from amo_notes.services.http_client import HttpClient
from amo_notes.services.oauth import OAuthManager
from amo_notes.services.token_store import TokenStore
from amo_notes.services.webhook_dispatcher import WebhookDispatcher


def get_http_client(settings: Settings = Depends(get_settings)) -> HttpClient:
    return HttpClient(timeout=settings.HTTP_TIMEOUT_SECONDS)


def get_token_store(settings: Settings = Depends(get_settings)) -> TokenStore:
    return TokenStore(settings.AMO_TOKEN_PATH)


def get_oauth_manager(
    settings: Settings = Depends(get_settings),
    http: HttpClient = Depends(get_http_client),
    store: TokenStore = Depends(get_token_store),
) -> OAuthManager:
    return OAuthManager(settings.oauth, http, store)


def get_api_client(
    settings: Settings = Depends(get_settings),
    http: HttpClient = Depends(get_http_client),
    store: TokenStore = Depends(get_token_store),
) -> AmoApiClient:
    return AmoApiClient(settings.AMO_DOMAIN, store, http)


@lru_cache
def get_deduplicator() -> Deduplicator:
    # Shared across requests so redelivered webhooks hit the same window.
    return Deduplicator(ttl=get_settings().DEDUP_TTL_SECONDS)


def get_dispatcher(
    settings: Settings = Depends(get_settings),
    api: AmoApiClient = Depends(get_api_client),
    dedup: Deduplicator = Depends(get_deduplicator),
) -> WebhookDispatcher:
    diff_engine = EventDiffEngine(LinkedObjectNameResolver(api))
    return WebhookDispatcher(api, dedup, diff_engine, timezone=settings.NOTES_TIMEZONE)

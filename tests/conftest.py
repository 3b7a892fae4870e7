# tests/conftest.py

import pytest

from amo_notes.models.token import OAuthConfig, TokenPair
from amo_notes.services.amocrm import AmoApiClient
from amo_notes.services.dedup import Deduplicator
from amo_notes.services.event_diff import EventDiffEngine, LinkedObjectNameResolver
from amo_notes.services.token_store import TokenStore
from amo_notes.services.webhook_dispatcher import WebhookDispatcher

from tests.fakes import DOMAIN, FakeClock, FakeHttp


@pytest.fixture
def token_path(tmp_path):
    return str(tmp_path / "runtime" / "json_token.json")


@pytest.fixture
def token_store(token_path):
    store = TokenStore(token_path)
    store.save(TokenPair(access_token="access-1", refresh_token="refresh-1", token_type="Bearer", expires_in=86400))
    return store


@pytest.fixture
def oauth_config(token_path):
    return OAuthConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://example.com/amo/callback",
        domain=DOMAIN,
        token_path=token_path,
    )


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def api(token_store, fake_http):
    return AmoApiClient(DOMAIN, token_store, fake_http)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher(api, clock):
    diff_engine = EventDiffEngine(LinkedObjectNameResolver(api))
    return WebhookDispatcher(api, Deduplicator(ttl=10, clock=clock), diff_engine, timezone="UTC")


@pytest.fixture
def amo_env(monkeypatch, token_path):
    from amo_notes.core.config import get_settings
    from amo_notes.routers.deps import get_deduplicator

    monkeypatch.setenv("AMO_CLIENT_ID", "client-id")
    monkeypatch.setenv("AMO_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("AMO_REDIRECT_URI", "https://example.com/amo/callback")
    monkeypatch.setenv("AMO_DOMAIN", DOMAIN)
    monkeypatch.setenv("AMO_TOKEN_PATH", token_path)
    get_settings.cache_clear()
    get_deduplicator.cache_clear()
    yield
    get_settings.cache_clear()
    get_deduplicator.cache_clear()

# amo_notes/services/oauth.py

import json
from urllib.parse import urlencode

from pydantic import ValidationError

from amo_notes.core.logger import logger
from amo_notes.models.token import OAuthConfig, TokenPair
from amo_notes.services.http_client import HttpClient
from amo_notes.services.token_store import TokenStore
from amo_notes.utils.errors import OAuthError


class OAuthManager:
    """Obtains amoCRM tokens (authorization code / refresh grants) and hands them to the TokenStore."""

    def __init__(self, config: OAuthConfig, http: HttpClient, store: TokenStore):
        self.config = config
        self.http = http
        self.store = store

    @property
    def token_url(self) -> str:
        return f"https://{self.config.domain}/oauth2/access_token"

    def build_authorization_url(self) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
        }
        return f"{self.config.authorize_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> TokenPair:
        return self._request_tokens({
            "grant_type": "authorization_code",
            "code": code,
        })

    def refresh(self) -> TokenPair:
        tokens = self.store.load()
        return self._request_tokens({
            "grant_type": "refresh_token",
            "refresh_token": tokens.refresh_token,
        })

    def _request_tokens(self, grant: dict) -> TokenPair:
        data = {
            **grant,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "redirect_uri": self.config.redirect_uri,
        }

        logger.info(f"Requesting amoCRM tokens ({grant['grant_type']})")
        response = self.http.execute(self.token_url, "POST", data)

        if response.status_code != 200:
            raise OAuthError(response.status_code, response.body)

        try:
            tokens = TokenPair.model_validate(json.loads(response.body))
        except (ValueError, ValidationError) as e:
            raise OAuthError(response.status_code, f"Unexpected token response: {e}") from e

        self.store.save(tokens)
        return tokens

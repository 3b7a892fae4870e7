# amo_notes/services/amocrm.py

import json
from typing import Any, Optional, Union

from amo_notes.core.logger import logger
from amo_notes.models.events import Note
from amo_notes.services.http_client import HttpClient
from amo_notes.services.token_store import TokenStore
from amo_notes.utils.errors import ApiError

ENTITY_LEADS = "leads"
ENTITY_CONTACTS = "contacts"


class AmoApiClient:
    """
    Authorized access to https://{domain}/api/v4.

    The bearer token is read from the TokenStore on every call. An expired
    token is not refreshed here: the call fails with ApiError and the caller
    decides whether to run OAuthManager.refresh().
    """

    def __init__(self, domain: str, store: TokenStore, http: HttpClient):
        self.domain = domain
        self.store = store
        self.http = http

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Union[dict, str, None] = None,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        tokens = self.store.load()
        request_headers = dict(headers or {})
        request_headers["Authorization"] = f"Bearer {tokens.access_token}"

        url = f"https://{self.domain}/api/v4/{endpoint.lstrip('/')}"
        response = self.http.execute(url, method, data, request_headers, params)

        if response.status_code != 200:
            raise ApiError(response.status_code, response.body)

        try:
            decoded = json.loads(response.body)
        except ValueError:
            return {}
        return decoded if decoded is not None else {}

    # --- Lookups ---

    def get_user(self, user_id: int) -> dict:
        return self.request(f"users/{user_id}")

    def get_lead(self, lead_id: int, with_: Optional[str] = None) -> dict:
        params = {"with": with_} if with_ else None
        return self.request(f"{ENTITY_LEADS}/{lead_id}", params=params)

    def get_contact(self, contact_id: int) -> dict:
        return self.request(f"{ENTITY_CONTACTS}/{contact_id}")

    def get_entity(self, entity_type: str, entity_id: int) -> dict:
        response = self.request(f"{entity_type}/{entity_id}")
        items = _dig(response, "_embedded", "items")
        if isinstance(items, list) and items:
            return items[0]
        return response

    def get_last_lead_event(self, lead_id: int) -> Optional[dict]:
        response = self.request("events", params={
            "filter[entity]": ENTITY_LEADS,
            "filter[entity_id]": lead_id,
            "limit": 1,
        })
        events = _dig(response, "_embedded", "events")
        if isinstance(events, list) and events:
            return events[0]
        return None

    def add_note(self, note: Note) -> None:
        self.request(
            f"{note.entity_type}/{note.entity_id}/notes",
            "POST",
            note.to_payload(),
            {"Content-Type": "application/json"},
        )
        logger.info(f"Note added to {note.entity_type}#{note.entity_id}")


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data

# amo_notes/services/http_client.py

from typing import NamedTuple, Optional, Union

import requests

from amo_notes.utils.errors import TransportError

DEFAULT_TIMEOUT = 15.0


class HttpResponse(NamedTuple):
    status_code: int
    body: str


class HttpClient:
    """
    Plain HTTP transport used by the OAuth flow and the API client.
    Dict bodies are sent form-encoded, string bodies are sent raw as JSON.
    Any status code is returned to the caller; only network failures raise.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def execute(
        self,
        url: str,
        method: str = "GET",
        data: Union[dict, str, None] = None,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> HttpResponse:
        request_headers = {"Accept": "application/json"}
        request_headers.update(headers or {})

        if isinstance(data, str):
            request_headers.setdefault("Content-Type", "application/json")
            body = data.encode("utf-8")
        else:
            body = data

        try:
            response = self.session.request(
                method.upper(),
                url,
                params=params,
                data=body,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"HTTP transport error for {method.upper()} {url}: {e}") from e

        return HttpResponse(status_code=response.status_code, body=response.text)

# amo_notes/utils/errors.py

from fastapi import HTTPException


# --- Domain errors ---

class AmoError(Exception):
    """Base class for everything the amoCRM integration raises."""


class ConfigError(AmoError):
    pass


class TokenFileError(AmoError):
    pass


class TokenNotFoundError(TokenFileError):
    pass


class TokenCorruptError(TokenFileError):
    pass


class TokenWriteError(TokenFileError):
    pass


class TransportError(AmoError):
    pass


class HttpStatusError(AmoError):
    """A non-200 answer from amoCRM; keeps the status code and raw body."""

    label = "HTTP request failed"

    def __init__(self, http_code: int, body: str):
        self.http_code = http_code
        self.body = body
        super().__init__(f"{self.label} ({http_code}): {body}")


class OAuthError(HttpStatusError):
    label = "OAuth Error"


class ApiError(HttpStatusError):
    label = "API request failed"


# --- HTTP errors for the routers ---

class BadRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)
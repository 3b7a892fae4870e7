# amo_notes/models/token.py

from pydantic import BaseModel, ConfigDict
from typing import Optional


class TokenPair(BaseModel):
    """OAuth token bundle as returned by /oauth2/access_token; unknown provider fields are kept."""
    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class OAuthConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    redirect_uri: str
    domain: str
    token_path: str
    authorize_url: str = "https://www.amocrm.ru/oauth"

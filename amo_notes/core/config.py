# amo_notes/core/config.py

from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from amo_notes.models.token import OAuthConfig
from amo_notes.utils.errors import ConfigError

REQUIRED_AMO_KEYS = (
    "AMO_CLIENT_ID",
    "AMO_CLIENT_SECRET",
    "AMO_REDIRECT_URI",
    "AMO_DOMAIN",
    "AMO_TOKEN_PATH",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # amoCRM OAuth settings
    AMO_CLIENT_ID: str = Field(...)
    AMO_CLIENT_SECRET: str = Field(...)
    AMO_REDIRECT_URI: str = Field(...)
    AMO_DOMAIN: str = Field(...)  # e.g. yourteam.amocrm.ru
    AMO_TOKEN_PATH: str = Field(...)
    AMO_AUTHORIZE_URL: str = Field(default="https://www.amocrm.ru/oauth")

    # Outbound calls
    HTTP_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)

    # Webhook processing
    DEDUP_TTL_SECONDS: float = Field(default=10.0, gt=0)
    NOTES_TIMEZONE: str = Field(default="UTC")

    LOG_LEVEL: str = Field(default="INFO")

    @field_validator(*REQUIRED_AMO_KEYS)
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @property
    def oauth(self) -> OAuthConfig:
        return OAuthConfig(
            client_id=self.AMO_CLIENT_ID,
            client_secret=self.AMO_CLIENT_SECRET,
            redirect_uri=self.AMO_REDIRECT_URI,
            domain=self.AMO_DOMAIN,
            token_path=self.AMO_TOKEN_PATH,
            authorize_url=self.AMO_AUTHORIZE_URL,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Load and validate settings once per process.
    Any missing or empty amoCRM key is a fatal ConfigError.
    """
    try:
        return Settings()
    except ValidationError as e:
        bad_keys = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ConfigError(f"Missing or invalid amoCRM config: {bad_keys}") from e

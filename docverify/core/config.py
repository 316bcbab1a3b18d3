"""
Application configuration models and helpers.

Settings are read from the environment (optionally seeded from a ``.env`` file)
so that every process instance serving either leg of the DigiLocker flow sees
the same provider credentials and the same shared session database.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()

_SETTINGS_CONFIG = SettingsConfigDict(extra="ignore", populate_by_name=True)

_WEB_SCHEMES = frozenset({"http", "https"})


class DigiLockerSettings(BaseSettings):
    """Credentials and endpoints for the DigiLocker OAuth2 provider."""

    model_config = _SETTINGS_CONFIG

    client_id: str = Field(..., validation_alias="DIGILOCKER_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="DIGILOCKER_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="DIGILOCKER_REDIRECT_URI")
    base_url: str = Field(
        "https://digilocker.meripehchaan.gov.in/public/oauth2",
        validation_alias="DIGILOCKER_BASE_URL",
    )
    timeout_seconds: float = Field(10.0, validation_alias="DIGILOCKER_TIMEOUT")

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def authorize_url(self) -> str:
        return f"{self.base_url}/1/authorize"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/1/token"

    @property
    def profile_url(self) -> str:
        return f"{self.base_url}/1/user"

    @property
    def issued_files_url(self) -> str:
        return f"{self.base_url}/2/files/issued"

    @property
    def eaadhaar_url(self) -> str:
        return f"{self.base_url}/2/xml/eaadhar"


class OAuthSettings(BaseSettings):
    """Lifetimes and escalation policy for the authorize/callback flow."""

    model_config = _SETTINGS_CONFIG

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    result_ttl_seconds: int = Field(300, validation_alias="RESULT_SESSION_TTL")
    sweep_interval_seconds: int = Field(60, validation_alias="RESULT_SWEEP_INTERVAL")
    max_locker_retries: int = Field(
        1,
        ge=0,
        validation_alias="LOCKER_MAX_RETRIES",
        description=(
            "Empty issued-document fetches tolerated before escalating to "
            "manual upload."
        ),
    )
    deep_link_url: str = Field(
        "driivera://digilocker",
        validation_alias="MOBILE_DEEP_LINK",
        description="Custom-scheme URL used to resume the mobile client.",
    )
    callback_url_prefixes: str = Field(
        "driivera://",
        validation_alias="MOBILE_CALLBACK_PREFIXES",
        description=(
            "Comma-separated prefixes a client-supplied callbackUrl must start "
            "with. Web schemes are never accepted."
        ),
    )

    def allows_callback_url(self, url: str) -> bool:
        """Whether the success redirect may carry a session id to ``url``."""
        if urlsplit(url).scheme.lower() in _WEB_SCHEMES:
            return False
        if url == self.deep_link_url:
            return True
        prefixes = [p.strip() for p in self.callback_url_prefixes.split(",") if p.strip()]
        return any(url.startswith(prefix) for prefix in prefixes)


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _SETTINGS_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description="Secret used to derive the key encrypting stored locker tokens.",
    )


class GeminiSettings(BaseSettings):
    """Configuration for the vision model used as the OCR engine."""

    model_config = _SETTINGS_CONFIG

    api_key: Optional[str] = Field(None, validation_alias="GEMINI_API_KEY")
    vision_model_name: str = Field(
        "gemini-1.5-flash", validation_alias="GEMINI_VISION_MODEL_NAME"
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _SETTINGS_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    store_db_path: str = Field("data/docverify.db", validation_alias="STORE_DB_PATH")
    max_upload_bytes: int = Field(10 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    digilocker: DigiLockerSettings = Field(default_factory=DigiLockerSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DigiLockerSettings",
    "GeminiSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]

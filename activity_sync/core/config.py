"""
Application configuration models and helpers.

Centralizes settings for the CMS, Strava, the auth proxy and the enrichment
source so the HTTP surface and the background sync share one configuration
surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import os

from pydantic import Field, field_validator
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
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class CMSSettings(BaseSettings):
    """Configuration for the Directus instance that stores activities."""

    model_config = SettingsConfigDict(populate_by_name=True)

    url: str = Field(..., validation_alias="CMS_URL")
    static_token: str = Field(
        ...,
        validation_alias="CMS_STATIC_TOKEN",
        description="Static admin token used for item and file operations.",
    )
    collection: str = Field("activities", validation_alias="CMS_COLLECTION")
    session_cookie: str = Field(
        "directus_refresh_token", validation_alias="CMS_SESSION_COOKIE"
    )

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def login_url(self) -> str:
        return f"{self.url}/admin/login"


class StravaSettings(BaseSettings):
    """Configuration for the Strava API and OAuth entry point."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(..., validation_alias="STRAVA_CLIENT_ID")
    api_base_url: str = Field(
        "https://www.strava.com/api/v3", validation_alias="STRAVA_API_BASE_URL"
    )
    authorize_url: str = Field(
        "https://www.strava.com/oauth/authorize",
        validation_alias="STRAVA_AUTHORIZE_URL",
    )
    scope: str = Field("activity:read_all", validation_alias="STRAVA_SCOPE")
    token_cookie: str = Field("strava_token", validation_alias="STRAVA_TOKEN_COOKIE")
    refresh_margin_seconds: int = Field(
        3600,
        validation_alias="STRAVA_REFRESH_MARGIN",
        description="Refresh the access token when it expires within this window.",
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AuthProxySettings(BaseSettings):
    """Location of the auth proxy that owns the Strava client secret."""

    model_config = SettingsConfigDict(populate_by_name=True)

    url: str = Field(..., validation_alias="AUTH_PROXY_URL")

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class WebhookSettings(BaseSettings):
    """Webhook endpoint and subscription handshake configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    secret: str = Field(
        ...,
        validation_alias="WEBHOOK_SECRET",
        description="Path segment that makes the webhook URL unguessable.",
    )
    verify_ttl_seconds: int = Field(600, validation_alias="WEBHOOK_VERIFY_TTL")


class EnrichmentSettings(BaseSettings):
    """Source of GPX tracks and notes not exposed by the Strava API."""

    model_config = SettingsConfigDict(populate_by_name=True)

    url: str = Field(..., validation_alias="ENRICHMENT_URL")

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    token_cookie_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_COOKIE_SECRET",
        description=(
            "Optional secret used to encrypt the Strava token cookie. "
            "Plain base64 JSON is used when omitted."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    service_base_url: str = Field(
        ...,
        validation_alias="SERVICE_BASE_URL",
        description="Public URL this service is mounted at, used for redirects.",
    )
    activity_field_map: Optional[Dict[str, str]] = Field(
        None,
        validation_alias="ACTIVITY_FIELD_MAP",
        description="JSON object mapping collection fields to Strava activity keys.",
    )
    cms: CMSSettings = Field(default_factory=CMSSettings)
    strava: StravaSettings = Field(default_factory=StravaSettings)
    auth_proxy: AuthProxySettings = Field(default_factory=AuthProxySettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    @field_validator("service_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def webhook_url(self) -> str:
        return f"{self.service_base_url}/webhook-{self.webhook.secret}"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AuthProxySettings",
    "CMSSettings",
    "EnrichmentSettings",
    "SecuritySettings",
    "StravaSettings",
    "WebhookSettings",
    "get_settings",
]

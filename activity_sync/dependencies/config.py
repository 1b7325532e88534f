"""
FastAPI dependency utilities for injecting configuration.
"""

from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends

from activity_sync.core.config import AppSettings, get_settings


@dataclass(frozen=True)
class ServiceUrls:
    """Absolute URLs of this service used in redirects and links."""

    root: str
    list_page: str
    auth: str
    webhook: str


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_service_urls(settings: AppSettings = Depends(get_app_settings)) -> ServiceUrls:
    """FastAPI dependency deriving this service's public URLs from settings."""
    root = settings.service_base_url
    return ServiceUrls(
        root=root,
        list_page=f"{root}/list",
        auth=f"{root}/auth",
        webhook=settings.webhook_url,
    )


SettingsDependency = Depends(get_app_settings)

__all__ = ["ServiceUrls", "SettingsDependency", "get_app_settings", "get_service_urls"]

"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_activity_resolver,
    get_auth_proxy_client,
    get_directus_client,
    get_enrichment_client,
    get_session_guard,
    get_strava_client,
    get_strava_token_service,
    get_subscription_manager,
    get_token_codec,
    get_verification_registry,
    get_webhook_dispatcher,
)
from .config import ServiceUrls, SettingsDependency, get_app_settings, get_service_urls

__all__ = [
    "ServiceUrls",
    "SettingsDependency",
    "get_activity_resolver",
    "get_app_settings",
    "get_auth_proxy_client",
    "get_directus_client",
    "get_service_urls",
    "get_enrichment_client",
    "get_session_guard",
    "get_strava_client",
    "get_strava_token_service",
    "get_subscription_manager",
    "get_token_codec",
    "get_verification_registry",
    "get_webhook_dispatcher",
]

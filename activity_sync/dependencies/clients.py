"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from activity_sync.clients import (
    AuthProxyClient,
    DirectusClient,
    EnrichmentClient,
    StravaClient,
)
from activity_sync.core.config import get_settings
from activity_sync.services import (
    ActivityMapper,
    ActivityResolver,
    SessionGuard,
    StravaTokenService,
    SubscriptionManager,
    TokenCodec,
    VerificationRegistry,
    WebhookDispatcher,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_directus_client() -> DirectusClient:
    """Provide the CMS client used for sessions, items and files."""
    return DirectusClient(_settings().cms)


@lru_cache()
def get_strava_client() -> StravaClient:
    """Provide the Strava API client."""
    return StravaClient(_settings().strava)


@lru_cache()
def get_auth_proxy_client() -> AuthProxyClient:
    """Provide the auth proxy client; OAuth redirects come back to ``/auth``."""
    settings = _settings()
    return AuthProxyClient(
        settings.auth_proxy,
        settings.strava,
        redirect_uri=f"{settings.service_base_url}/auth",
    )


@lru_cache()
def get_enrichment_client() -> EnrichmentClient:
    """Provide the GPX/notes enrichment client."""
    return EnrichmentClient(_settings().enrichment)


@lru_cache()
def get_token_codec() -> TokenCodec:
    """Provide the token cookie codec, encrypting when a secret is configured."""
    return TokenCodec(secret=_settings().security.token_cookie_secret)


@lru_cache()
def get_strava_token_service() -> StravaTokenService:
    """Provide the process-wide Strava token refresher."""
    settings = _settings()
    return StravaTokenService(
        get_auth_proxy_client(),
        refresh_margin_seconds=settings.strava.refresh_margin_seconds,
    )


@lru_cache()
def get_verification_registry() -> VerificationRegistry:
    """Provide the registry of the live subscription verification token."""
    return VerificationRegistry(ttl_seconds=_settings().webhook.verify_ttl_seconds)


@lru_cache()
def get_activity_resolver() -> ActivityResolver:
    """Provide the activity resolver shared by webhook and fetch routes."""
    return ActivityResolver(
        store=get_directus_client(),
        strava=get_strava_client(),
        enrichment=get_enrichment_client(),
        mapper=ActivityMapper(_settings().activity_field_map),
    )


def get_session_guard() -> SessionGuard:
    """Build the session guard run in front of browser routes."""
    settings = _settings()
    return SessionGuard(
        cms_client=get_directus_client(),
        token_service=get_strava_token_service(),
        codec=get_token_codec(),
        cms_cookie_name=settings.cms.session_cookie,
        token_cookie_name=settings.strava.token_cookie,
    )


def get_subscription_manager() -> SubscriptionManager:
    """Build a subscription manager bound to this service's webhook URL."""
    return SubscriptionManager(
        auth_proxy=get_auth_proxy_client(),
        registry=get_verification_registry(),
        callback_url=_settings().webhook_url,
    )


def get_webhook_dispatcher() -> WebhookDispatcher:
    """Build the dispatcher that resolves webhook events in the background."""
    return WebhookDispatcher(
        resolver=get_activity_resolver(),
        token_service=get_strava_token_service(),
    )


__all__ = [
    "get_activity_resolver",
    "get_auth_proxy_client",
    "get_directus_client",
    "get_enrichment_client",
    "get_session_guard",
    "get_strava_client",
    "get_strava_token_service",
    "get_subscription_manager",
    "get_token_codec",
    "get_verification_registry",
    "get_webhook_dispatcher",
]

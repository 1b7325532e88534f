"""Expose constructed client wrappers."""

from .auth_proxy import (
    AuthProxyClient,
    AuthProxyError,
    OAuthTokenExchangeError,
    TokenRefreshFailed,
)
from .directus import (
    CMSSession,
    ContentStoreError,
    DirectusClient,
    SessionExpired,
    UploadError,
    UpsertError,
)
from .enrichment import EnrichmentClient, EnrichmentFetchError
from .strava import PlatformApiError, StravaClient

__all__ = [
    "AuthProxyClient",
    "AuthProxyError",
    "CMSSession",
    "ContentStoreError",
    "DirectusClient",
    "EnrichmentClient",
    "EnrichmentFetchError",
    "OAuthTokenExchangeError",
    "PlatformApiError",
    "SessionExpired",
    "StravaClient",
    "TokenRefreshFailed",
    "UploadError",
    "UpsertError",
]

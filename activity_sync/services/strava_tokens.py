"""
Helpers for keeping Strava OAuth tokens fresh.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from activity_sync.clients.auth_proxy import AuthProxyClient
from activity_sync.models.oauth import TokenBundle

logger = logging.getLogger(__name__)


class StravaTokenService:
    """Refreshes token bundles close to expiry and remembers the live one.

    Browser requests carry their bundle in a cookie. Webhook deliveries carry
    none, so the most recent bundle seen by any request is kept in process
    memory for background resolutions. It is never written to disk.
    """

    def __init__(
        self,
        auth_proxy: AuthProxyClient,
        *,
        refresh_margin_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._proxy = auth_proxy
        self._margin = refresh_margin_seconds
        self._clock = clock
        self._live: Optional[TokenBundle] = None

    def needs_refresh(self, bundle: TokenBundle) -> bool:
        return bundle.expires_within(self._margin, now=self._clock())

    async def ensure_fresh(self, bundle: TokenBundle) -> TokenBundle:
        """Return ``bundle`` or its refreshed replacement.

        Raises ``TokenRefreshFailed`` when the proxy refuses the refresh.
        """
        if self.needs_refresh(bundle):
            logger.info("Strava token expires at %s, refreshing", bundle.expires_at)
            bundle = await self._proxy.refresh_token(bundle.refresh_token)
        self.remember(bundle)
        return bundle

    def remember(self, bundle: TokenBundle) -> None:
        self._live = bundle

    async def current(self) -> Optional[TokenBundle]:
        """Return a usable live bundle for background work, if one is known."""
        if self._live is None:
            return None
        return await self.ensure_fresh(self._live)


__all__ = ["StravaTokenService"]

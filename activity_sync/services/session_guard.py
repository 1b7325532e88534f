"""
Per-request gate that keeps both the CMS session and the Strava token alive.

The CMS session is enforced: a missing or rejected credential ends the
request with a login redirect. The Strava token is best effort: any failure
while decoding or refreshing it is logged and the request continues without
a token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from activity_sync.clients.directus import DirectusClient, SessionExpired
from activity_sync.models.oauth import TokenBundle
from activity_sync.services.strava_tokens import StravaTokenService
from activity_sync.services.token_codec import TokenCodec

logger = logging.getLogger(__name__)

TOKEN_COOKIE_MAX_AGE = 10 * 365 * 24 * 60 * 60


@dataclass
class GuardedSession:
    """Credentials to hand back to the browser once the route has run."""

    cms_refresh_token: str
    cms_max_age: int
    token: Optional[TokenBundle] = None
    token_cookie: Optional[str] = None


class SessionGuard:
    def __init__(
        self,
        *,
        cms_client: DirectusClient,
        token_service: StravaTokenService,
        codec: TokenCodec,
        cms_cookie_name: str = "directus_refresh_token",
        token_cookie_name: str = "strava_token",
    ) -> None:
        self._cms = cms_client
        self._tokens = token_service
        self._codec = codec
        self.cms_cookie_name = cms_cookie_name
        self.token_cookie_name = token_cookie_name

    async def authorize(self, cookies: Mapping[str, str]) -> GuardedSession:
        """Validate the CMS session and refresh the Strava token when due.

        Raises ``SessionExpired`` when the browser has to log in again.
        """
        cms_refresh_token = cookies.get(self.cms_cookie_name)
        if not cms_refresh_token:
            raise SessionExpired("No CMS session cookie present.")

        cms_session = await self._cms.refresh_session(cms_refresh_token)
        guarded = GuardedSession(
            cms_refresh_token=cms_session.refresh_token,
            cms_max_age=cms_session.max_age_seconds,
        )

        raw_token = cookies.get(self.token_cookie_name)
        if not raw_token:
            return guarded

        try:
            bundle = self._codec.decode(raw_token)
            bundle = await self._tokens.ensure_fresh(bundle)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Strava token unusable; continuing without it")
            return guarded

        guarded.token = bundle
        guarded.token_cookie = self._codec.encode(bundle)
        return guarded


__all__ = ["GuardedSession", "SessionGuard", "TOKEN_COOKIE_MAX_AGE"]

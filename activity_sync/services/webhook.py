"""
Strava push subscription handshake and event dispatch.

Strava validates a new subscription by calling the callback URL with the
verify token chosen at creation time. Only the most recent pending
verification is honoured, and only until it expires.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import threading
import time
import uuid
from dataclasses import dataclass
from http import HTTPStatus
from typing import Callable, Optional

from activity_sync.schemas import ResolutionResult, WebhookEvent
from activity_sync.services.activity_resolver import ActivityResolver
from activity_sync.services.strava_tokens import StravaTokenService

logger = logging.getLogger(__name__)

SUBSCRIBE_MODE = "subscribe"


class WebhookHandshakeRejected(Exception):
    """Raised when a verification challenge must be refused."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason


@dataclass(frozen=True)
class PendingVerification:
    attempt_id: str
    token: str
    issued_at: float
    ttl_seconds: int

    def expired(self, now: float) -> bool:
        return now - self.issued_at > self.ttl_seconds


class VerificationRegistry:
    """Holds the single live verification token for subscription creation."""

    def __init__(
        self,
        *,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: Optional[PendingVerification] = None

    def issue(self) -> PendingVerification:
        """Create a verification token, replacing any earlier one."""
        pending = PendingVerification(
            attempt_id=uuid.uuid4().hex,
            token=secrets.token_urlsafe(32),
            issued_at=self._clock(),
            ttl_seconds=self._ttl,
        )
        with self._lock:
            self._pending = pending
        return pending

    def verify(
        self, *, mode: str | None, token: str | None, challenge: str | None
    ) -> str:
        """Return the challenge to echo, or raise ``WebhookHandshakeRejected``."""
        if not mode or not token:
            raise WebhookHandshakeRejected(
                HTTPStatus.BAD_REQUEST, "Missing hub.mode or hub.verify_token."
            )

        with self._lock:
            pending = self._pending
            if pending is not None and pending.expired(self._clock()):
                logger.info("Verification attempt %s expired", pending.attempt_id)
                self._pending = pending = None

        if (
            mode != SUBSCRIBE_MODE
            or pending is None
            or not hmac.compare_digest(token.encode("utf-8"), pending.token.encode("utf-8"))
        ):
            raise WebhookHandshakeRejected(
                HTTPStatus.FORBIDDEN, "Verification token does not match."
            )

        logger.info("Verification attempt %s accepted", pending.attempt_id)
        return challenge or ""


class WebhookDispatcher:
    """Turns webhook events into activity resolutions, off the request path."""

    def __init__(
        self, *, resolver: ActivityResolver, token_service: StravaTokenService
    ) -> None:
        self._resolver = resolver
        self._tokens = token_service

    async def dispatch(self, event: WebhookEvent) -> Optional[ResolutionResult]:
        """Resolve the event's activity; never raises."""
        logger.info(
            "Strava event received: %s %s %s",
            event.aspect_type,
            event.object_type,
            event.object_id,
        )
        if not event.requires_resolution:
            logger.info("Ignoring %s event for %s", event.aspect_type, event.object_type)
            return None

        try:
            bundle = await self._tokens.current()
            if bundle is None:
                logger.warning(
                    "No live Strava token; dropping event for activity %s",
                    event.object_id,
                )
                return ResolutionResult(
                    activity_id=event.object_id, error="No live Strava token."
                )
            result = await self._resolver.resolve(event.object_id, bundle)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Resolution of activity %s crashed", event.object_id)
            return ResolutionResult(activity_id=event.object_id, error=str(exc))

        if result.ok:
            logger.info("Updated activity: %s", result.record_id)
        else:
            logger.error(
                "Resolution of activity %s failed: %s", event.object_id, result.error
            )
        return result


__all__ = [
    "PendingVerification",
    "SUBSCRIBE_MODE",
    "VerificationRegistry",
    "WebhookDispatcher",
    "WebhookHandshakeRejected",
]

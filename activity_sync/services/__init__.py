"""Service layer exports."""

from .activity_mapping import ActivityMapper
from .activity_resolver import ActivityResolver
from .session_guard import GuardedSession, SessionGuard
from .strava_tokens import StravaTokenService
from .subscriptions import SubscriptionManager
from .token_codec import MalformedToken, TokenCodec
from .webhook import (
    VerificationRegistry,
    WebhookDispatcher,
    WebhookHandshakeRejected,
)

__all__ = [
    "ActivityMapper",
    "ActivityResolver",
    "GuardedSession",
    "MalformedToken",
    "SessionGuard",
    "StravaTokenService",
    "SubscriptionManager",
    "TokenCodec",
    "VerificationRegistry",
    "WebhookDispatcher",
    "WebhookHandshakeRejected",
]

"""Public schema exports."""

from .activity import EnrichmentData, ExistingRecord, ResolutionResult
from .strava import RESOLVABLE_ASPECTS, WebhookEvent

__all__ = [
    "EnrichmentData",
    "ExistingRecord",
    "RESOLVABLE_ASPECTS",
    "ResolutionResult",
    "WebhookEvent",
]

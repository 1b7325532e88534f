"""
Pydantic models for Strava webhook payloads.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

RESOLVABLE_ASPECTS = frozenset({"create", "update"})


class WebhookEvent(BaseModel):
    """Change notification pushed by the Strava subscription."""

    aspect_type: Literal["create", "update", "delete"]
    object_type: str = Field(..., description="Either 'activity' or 'athlete'.")
    object_id: int
    owner_id: Optional[int] = None
    subscription_id: Optional[int] = None
    event_time: Optional[int] = None
    updates: Dict[str, Any] = Field(default_factory=dict)

    @property
    def requires_resolution(self) -> bool:
        return self.object_type == "activity" and self.aspect_type in RESOLVABLE_ASPECTS


__all__ = ["RESOLVABLE_ASPECTS", "WebhookEvent"]

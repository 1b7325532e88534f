"""
Domain models for the Strava OAuth token bundle.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenBundle(BaseModel):
    """Access/refresh token pair as issued by the auth proxy.

    Additional keys returned by the token endpoint (``token_type``,
    ``expires_in``, ``athlete`` ...) are kept so the bundle survives a cookie
    round-trip unchanged.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str
    expires_at: int = Field(..., description="Expiry as unix seconds.")

    def expires_within(self, seconds: int, *, now: float) -> bool:
        return self.expires_at - now <= seconds


__all__ = ["TokenBundle"]

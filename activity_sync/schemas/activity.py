"""
Models exchanged while resolving a single activity into the CMS.
"""

from typing import Optional

from pydantic import BaseModel, Field


class EnrichmentData(BaseModel):
    """Data the Strava API does not expose, fetched from the enrichment source."""

    gpx: Optional[str] = Field(
        None, description="GPX track as text; absent for activities without GPS."
    )
    notes: Optional[str] = Field(None, description="Private notes for the activity.")


class ExistingRecord(BaseModel):
    """Projection of a stored activity item used to decide create vs update."""

    item_id: str
    file_id: Optional[str] = None


class ResolutionResult(BaseModel):
    """Outcome of one fetch-enrich-upsert pass for an activity."""

    activity_id: int
    record_id: Optional[str] = None
    created: bool = False
    file_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = ["EnrichmentData", "ExistingRecord", "ResolutionResult"]

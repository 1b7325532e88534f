"""Client for the source of GPX tracks and notes missing from the Strava API."""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from activity_sync.core.config import EnrichmentSettings
from activity_sync.schemas import EnrichmentData
from activity_sync.utils.http import RetryConfig, request_with_retry


class EnrichmentFetchError(Exception):
    """Raised when enrichment data for an activity cannot be retrieved."""


class EnrichmentClient:
    """Fetch the GPX export and notes of an activity."""

    def __init__(
        self,
        settings: EnrichmentSettings,
        *,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._retry_config = retry_config or RetryConfig()
        self._transport = transport

    async def fetch(self, activity_id: int) -> EnrichmentData:
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.url, timeout=30.0, transport=self._transport
            ) as client:
                response = await request_with_retry(
                    client.get,
                    f"/activities/{activity_id}",
                    retry_config=self._retry_config,
                )
            return EnrichmentData.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            raise EnrichmentFetchError(
                f"Enrichment fetch for activity {activity_id} failed: {exc}"
            ) from exc


__all__ = ["EnrichmentClient", "EnrichmentFetchError"]

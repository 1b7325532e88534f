"""
Fetch, enrich and upsert a single Strava activity into the CMS.
"""

from __future__ import annotations

import asyncio
import logging
import weakref

from activity_sync.clients.directus import ContentStoreError, DirectusClient
from activity_sync.clients.enrichment import EnrichmentClient, EnrichmentFetchError
from activity_sync.clients.strava import PlatformApiError, StravaClient
from activity_sync.models.oauth import TokenBundle
from activity_sync.schemas import ResolutionResult
from activity_sync.services.activity_mapping import ActivityMapper

logger = logging.getLogger(__name__)


class ActivityResolver:
    """Merge Strava data and enrichment data into one record per activity.

    Records are matched by the activity id embedded in their stored payload,
    so re-resolving an activity updates the same item and replaces its GPX
    file instead of creating duplicates. Resolutions of the same id within
    this process are serialized; separate processes can still race between
    lookup and write.
    """

    def __init__(
        self,
        *,
        store: DirectusClient,
        strava: StravaClient,
        enrichment: EnrichmentClient,
        mapper: ActivityMapper,
    ) -> None:
        self._store = store
        self._strava = strava
        self._enrichment = enrichment
        self._mapper = mapper
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, activity_id: int) -> asyncio.Lock:
        lock = self._locks.get(activity_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[activity_id] = lock
        return lock

    async def resolve(self, activity_id: int, token: TokenBundle) -> ResolutionResult:
        """Run one resolution and report its outcome instead of raising.

        Upstream failures (Strava, enrichment source, content store) are
        returned as a failed ``ResolutionResult``.
        """
        lock = self._lock_for(activity_id)
        async with lock:
            try:
                return await self._resolve(activity_id, token)
            except (PlatformApiError, EnrichmentFetchError, ContentStoreError) as exc:
                logger.warning("Activity %s not synchronized: %s", activity_id, exc)
                return ResolutionResult(
                    activity_id=activity_id,
                    error=f"{type(exc).__name__}: {exc}",
                )

    async def _resolve(self, activity_id: int, token: TokenBundle) -> ResolutionResult:
        existing = await self._store.find_activity(activity_id)
        activity = await self._strava.get_activity(activity_id, token.access_token)
        enrichment = await self._enrichment.fetch(activity_id)

        file_id = None
        if enrichment.gpx:
            file_id = await self._store.upload_file(
                content=enrichment.gpx.encode("utf-8"),
                filename=f"{activity_id}.gpx",
                title=activity.get("name") or str(activity_id),
                replace_id=existing.file_id if existing else None,
            )

        item = self._mapper.to_item(activity)
        item["files"] = [{"directus_files_id": file_id}] if file_id else []
        item["notes"] = enrichment.notes

        record_id = await self._store.upsert_activity(
            item_id=existing.item_id if existing else None, item=item
        )
        return ResolutionResult(
            activity_id=activity_id,
            record_id=record_id,
            created=existing is None,
            file_id=file_id,
        )


__all__ = ["ActivityResolver"]

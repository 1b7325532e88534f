"""Strava REST API client."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from activity_sync.core.config import StravaSettings


class PlatformApiError(Exception):
    """Raised when the Strava API answers with an error or cannot be reached."""

    def __init__(self, status_code: int, body: Any) -> None:
        super().__init__(f"Strava API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class StravaClient:
    """Read activities on behalf of the athlete owning ``access_token``."""

    def __init__(
        self,
        settings: StravaSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def _get(self, path: str, access_token: str, params: Dict[str, Any] | None = None) -> Any:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.api_base_url,
                timeout=10.0,
                transport=self._transport,
            ) as client:
                response = await client.get(path, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise PlatformApiError(502, {"message": str(exc)}) from exc

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise PlatformApiError(response.status_code, body)
        return response.json()

    async def get_activity(self, activity_id: int | str, access_token: str) -> Dict[str, Any]:
        """Return the detailed representation of one activity."""
        return await self._get(f"/activities/{activity_id}", access_token)

    async def list_activities(
        self, access_token: str, *, page: int = 1, per_page: int = 30
    ) -> List[Dict[str, Any]]:
        """Return the athlete's most recent activities."""
        return await self._get(
            "/activities",
            access_token,
            params={"page": page, "per_page": per_page},
        )


__all__ = ["PlatformApiError", "StravaClient"]

"""
Directus REST client.

Covers the two roles the CMS plays for this service: the authentication
backend whose session guards every browser request, and the content store
that holds synchronized activities and their GPX files.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi import status

from activity_sync.core.config import CMSSettings
from activity_sync.schemas import ExistingRecord

logger = logging.getLogger(__name__)


class SessionExpired(Exception):
    """Raised when the CMS refuses to refresh a browser session."""


class ContentStoreError(Exception):
    """Raised when an item or file operation against the CMS fails."""


class UploadError(ContentStoreError):
    """Raised when a file upload or replacement fails."""


class UpsertError(ContentStoreError):
    """Raised when creating or updating an activity item fails."""


@dataclass(frozen=True)
class CMSSession:
    """Rotated CMS credentials returned by a successful refresh."""

    refresh_token: str
    access_token: str
    expires_ms: int

    @property
    def max_age_seconds(self) -> int:
        return max(self.expires_ms // 1000, 0)


def _json_body(response: httpx.Response, error: type[Exception]) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise error(f"CMS returned a non-JSON body ({response.status_code}).") from exc
    if not isinstance(body, dict):
        raise error(f"CMS returned an unexpected body: {body!r}")
    return body


def _created_id(response: httpx.Response, error: type[Exception]) -> str:
    data = _json_body(response, error).get("data") or {}
    if data.get("id") is None:
        raise error("CMS response carried no id.")
    return str(data["id"])


class DirectusClient:
    """Thin async wrapper over the Directus auth, items and files endpoints."""

    def __init__(
        self,
        settings: CMSSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self, timeout: float = 10.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.url,
            timeout=timeout,
            transport=self._transport,
        )

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._settings.static_token}"}

    async def refresh_session(self, refresh_token: str) -> CMSSession:
        """Exchange a browser refresh token for a rotated one."""
        payload = {"refresh_token": refresh_token, "mode": "json"}
        try:
            async with self._client() as client:
                response = await client.post("/auth/refresh", json=payload)
        except httpx.HTTPError as exc:
            raise SessionExpired(f"CMS refresh request failed: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise SessionExpired(response.text)

        data = _json_body(response, SessionExpired).get("data") or {}
        new_refresh = data.get("refresh_token")
        access_token = data.get("access_token")
        expires = data.get("expires")
        if not new_refresh or not access_token or expires is None:
            raise SessionExpired("Incomplete refresh payload returned from the CMS.")

        return CMSSession(
            refresh_token=new_refresh,
            access_token=access_token,
            expires_ms=int(expires),
        )

    async def find_activity(self, activity_id: int) -> Optional[ExistingRecord]:
        """Locate the item whose stored platform JSON embeds ``activity_id``."""
        params = {
            "filter": json.dumps({"data": {"_contains": f'"id":{activity_id}'}}),
            "fields": "id,files.directus_files_id.id",
            "limit": 1,
        }
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/items/{self._settings.collection}",
                    params=params,
                    headers=self._auth_headers,
                )
        except httpx.HTTPError as exc:
            raise ContentStoreError(f"Activity lookup failed: {exc}") from exc

        if response.is_error:
            raise ContentStoreError(
                f"Activity lookup failed ({response.status_code}): {response.text}"
            )
        rows = _json_body(response, ContentStoreError).get("data") or []
        if not rows:
            return None

        row = rows[0]
        file_id = None
        files = row.get("files") or []
        if files:
            linked = files[0].get("directus_files_id") or {}
            if linked.get("id") is not None:
                file_id = str(linked["id"])
        return ExistingRecord(item_id=str(row["id"]), file_id=file_id)

    async def upload_file(
        self,
        *,
        content: bytes,
        filename: str,
        title: str,
        mime_type: str = "application/gpx+xml",
        replace_id: str | None = None,
    ) -> str:
        """Upload ``content`` as a file, replacing ``replace_id`` in place when given."""
        form = {"title": title, "filename_download": filename, "storage": "local"}
        files = {"file": (filename, content, mime_type)}
        try:
            async with self._client(timeout=30.0) as client:
                if replace_id:
                    response = await client.patch(
                        f"/files/{replace_id}",
                        data=form,
                        files=files,
                        headers=self._auth_headers,
                    )
                else:
                    response = await client.post(
                        "/files", data=form, files=files, headers=self._auth_headers
                    )
        except httpx.HTTPError as exc:
            raise UploadError(f"Upload of {filename} failed: {exc}") from exc

        if response.is_error:
            raise UploadError(
                f"Upload of {filename} failed ({response.status_code}): {response.text}"
            )
        return _created_id(response, UploadError)

    async def upsert_activity(
        self, *, item_id: str | None, item: Dict[str, Any]
    ) -> str:
        """Update ``item_id`` when given, otherwise create a new activity item."""
        collection = self._settings.collection
        try:
            async with self._client() as client:
                if item_id:
                    response = await client.patch(
                        f"/items/{collection}/{item_id}",
                        json=item,
                        headers=self._auth_headers,
                    )
                else:
                    response = await client.post(
                        f"/items/{collection}", json=item, headers=self._auth_headers
                    )
        except httpx.HTTPError as exc:
            raise UpsertError(f"Activity upsert failed: {exc}") from exc

        if response.is_error:
            raise UpsertError(
                f"Activity upsert failed ({response.status_code}): {response.text}"
            )
        return _created_id(response, UpsertError)


__all__ = [
    "CMSSession",
    "ContentStoreError",
    "DirectusClient",
    "SessionExpired",
    "UploadError",
    "UpsertError",
]

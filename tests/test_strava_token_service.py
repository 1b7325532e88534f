from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from activity_sync.models.oauth import TokenBundle
from activity_sync.services.strava_tokens import StravaTokenService


class DummyAuthProxy:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.now = 0

    async def refresh_token(self, refresh_token: str) -> TokenBundle:
        self.calls.append(refresh_token)
        return TokenBundle(
            access_token=f"refreshed-{len(self.calls)}",
            refresh_token=refresh_token,
            expires_at=self.now + 21_600,
        )


@pytest.mark.asyncio
async def test_current_is_empty_until_a_token_is_seen() -> None:
    proxy = DummyAuthProxy()
    service = StravaTokenService(proxy, clock=lambda: 1_000)

    assert await service.current() is None
    assert proxy.calls == []


@pytest.mark.asyncio
async def test_current_refreshes_remembered_token_when_stale() -> None:
    clock = {"now": 1_000_000}
    proxy = DummyAuthProxy()
    proxy.now = clock["now"]
    service = StravaTokenService(proxy, clock=lambda: clock["now"])

    service.remember(
        TokenBundle(access_token="a", refresh_token="r", expires_at=clock["now"] + 7_200)
    )
    first = await service.current()
    assert first.access_token == "a"
    assert proxy.calls == []

    # An hour later the remembered token sits inside the refresh window.
    clock["now"] += 3_600
    proxy.now = clock["now"]
    second = await service.current()
    assert second.access_token == "refreshed-1"
    assert proxy.calls == ["r"]

    third = await service.current()
    assert third.access_token == "refreshed-1"
    assert proxy.calls == ["r"]


def test_refresh_margin_is_configurable() -> None:
    service = StravaTokenService(
        DummyAuthProxy(), refresh_margin_seconds=60, clock=lambda: 0
    )

    assert service.needs_refresh(TokenBundle(access_token="a", refresh_token="r", expires_at=60))
    assert not service.needs_refresh(
        TokenBundle(access_token="a", refresh_token="r", expires_at=61)
    )

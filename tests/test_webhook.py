try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest
from fastapi import BackgroundTasks

from activity_sync.api import routes
from activity_sync.clients.directus import CMSSession
from activity_sync.core.config import get_settings
from activity_sync.main import app
from activity_sync.models.oauth import TokenBundle
from activity_sync.schemas import ResolutionResult, WebhookEvent
from activity_sync.services.session_guard import SessionGuard
from activity_sync.services.strava_tokens import StravaTokenService
from activity_sync.services.subscriptions import SubscriptionManager
from activity_sync.services.token_codec import TokenCodec
from activity_sync.services.webhook import VerificationRegistry, WebhookDispatcher

pytestmark = pytest.mark.anyio("asyncio")

SECRET = get_settings().webhook.secret
WEBHOOK_PATH = f"/webhook-{SECRET}"


class FakeCMSClient:
    async def refresh_session(self, refresh_token: str) -> CMSSession:
        return CMSSession(refresh_token="rotated", access_token="a", expires_ms=60_000)


class RecordingAuthProxy:
    def __init__(self) -> None:
        self.created: list[dict] = []

    async def create_subscription(self, *, callback_url: str, verify_token: str):
        self.created.append({"callback_url": callback_url, "verify_token": verify_token})
        return {"id": 555}

    async def refresh_token(self, refresh_token: str):  # pragma: no cover - unused
        raise AssertionError("refresh not expected")


class RecordingDispatcher:
    def __init__(self) -> None:
        self.events: list[WebhookEvent] = []

    async def dispatch(self, event: WebhookEvent):
        self.events.append(event)


class RecordingResolver:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[int, str]] = []

    async def resolve(self, activity_id: int, token: TokenBundle) -> ResolutionResult:
        self.calls.append((activity_id, token.access_token))
        if self.fail:
            raise RuntimeError("unexpected")
        return ResolutionResult(activity_id=activity_id, record_id="item-1", created=True)


@pytest.fixture()
def clock():
    return {"now": 1_700_000_000.0}


@pytest.fixture()
def overrides(clock):
    from activity_sync import dependencies

    registry = VerificationRegistry(ttl_seconds=600, clock=lambda: clock["now"])
    proxy = RecordingAuthProxy()
    dispatcher = RecordingDispatcher()
    settings = get_settings()
    manager = SubscriptionManager(
        auth_proxy=proxy, registry=registry, callback_url=settings.webhook_url
    )
    guard = SessionGuard(
        cms_client=FakeCMSClient(),
        token_service=StravaTokenService(proxy),
        codec=TokenCodec(),
    )

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_verification_registry: lambda: registry,
            dependencies.get_subscription_manager: lambda: manager,
            dependencies.get_webhook_dispatcher: lambda: dispatcher,
            dependencies.get_session_guard: lambda: guard,
        }
    )

    yield registry, proxy, dispatcher

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        cookies={"directus_refresh_token": "cms-refresh"},
    ) as test_client:
        yield test_client


async def _create_subscription(client, proxy) -> str:
    response = await client.get("/subscription/create")
    assert response.status_code == 302
    assert response.headers["location"] == get_settings().service_base_url
    return proxy.created[-1]["verify_token"]


async def test_challenge_echoed_for_current_verify_token(overrides, client):
    _, proxy, _ = overrides
    token = await _create_subscription(client, proxy)

    assert proxy.created[-1]["callback_url"] == get_settings().webhook_url

    response = await client.get(
        WEBHOOK_PATH,
        params={
            "hub.mode": "subscribe",
            "hub.verify_token": token,
            "hub.challenge": "C-15f7d1a91c1f40f8",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"hub.challenge": "C-15f7d1a91c1f40f8"}


async def test_challenge_rejected_for_mismatched_token(overrides, client):
    _, proxy, _ = overrides
    await _create_subscription(client, proxy)

    response = await client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": "guess", "hub.challenge": "C"},
    )

    assert response.status_code == 403


async def test_only_the_latest_verify_token_is_accepted(overrides, client):
    _, proxy, _ = overrides
    first = await _create_subscription(client, proxy)
    second = await _create_subscription(client, proxy)

    stale = await client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": first, "hub.challenge": "C"},
    )
    fresh = await client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": second, "hub.challenge": "C"},
    )

    assert stale.status_code == 403
    assert fresh.status_code == 200


async def test_challenge_rejected_after_verification_expires(overrides, client, clock):
    _, proxy, _ = overrides
    token = await _create_subscription(client, proxy)
    clock["now"] += 601

    response = await client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": token, "hub.challenge": "C"},
    )

    assert response.status_code == 403


async def test_challenge_without_token_issued_is_forbidden(client):
    response = await client.get(
        WEBHOOK_PATH,
        params={"hub.mode": "subscribe", "hub.verify_token": "x", "hub.challenge": "C"},
    )

    assert response.status_code == 403


@pytest.mark.parametrize(
    "params",
    [
        {"hub.verify_token": "x", "hub.challenge": "C"},
        {"hub.mode": "subscribe", "hub.challenge": "C"},
        {},
    ],
)
async def test_challenge_missing_mode_or_token_is_bad_request(client, params):
    response = await client.get(WEBHOOK_PATH, params=params)

    assert response.status_code == 400


async def test_wrong_secret_is_not_found(client):
    response = await client.post("/webhook-wrong", json={})

    assert response.status_code == 404


async def test_webhook_routes_skip_the_session_guard(overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as anonymous:
        response = await anonymous.post(
            WEBHOOK_PATH,
            json={
                "aspect_type": "create",
                "object_type": "activity",
                "object_id": 12345,
                "owner_id": 1,
            },
        )

    assert response.status_code == 200
    assert response.text == "EVENT_RECEIVED"
    _, _, dispatcher = overrides
    assert [event.object_id for event in dispatcher.events] == [12345]


async def test_unrecognized_payload_is_acknowledged_and_dropped(overrides, client):
    _, _, dispatcher = overrides

    response = await client.post(WEBHOOK_PATH, json={"hello": "world"})

    assert response.status_code == 200
    assert response.text == "EVENT_RECEIVED"
    assert dispatcher.events == []


async def test_delete_event_is_acknowledged_without_resolution(overrides, client):
    resolver = RecordingResolver()
    dispatcher = WebhookDispatcher(
        resolver=resolver, token_service=_token_service_with_live_token()
    )
    from activity_sync import dependencies

    app.dependency_overrides[dependencies.get_webhook_dispatcher] = lambda: dispatcher

    response = await client.post(
        WEBHOOK_PATH,
        json={"aspect_type": "delete", "object_type": "activity", "object_id": 1},
    )

    assert response.status_code == 200
    assert response.text == "EVENT_RECEIVED"
    assert resolver.calls == []


async def test_activity_event_without_owner_is_resolved(overrides, client):
    resolver = RecordingResolver()
    dispatcher = WebhookDispatcher(
        resolver=resolver, token_service=_token_service_with_live_token()
    )
    from activity_sync import dependencies

    app.dependency_overrides[dependencies.get_webhook_dispatcher] = lambda: dispatcher

    response = await client.post(
        WEBHOOK_PATH,
        json={"aspect_type": "create", "object_type": "activity", "object_id": 7},
    )

    assert response.status_code == 200
    assert resolver.calls == [(7, "live")]


async def test_event_ack_is_returned_before_dispatch_runs():
    dispatcher = RecordingDispatcher()
    background = BackgroundTasks()

    response = await routes.receive_webhook_event(
        secret=SECRET,
        background_tasks=background,
        settings=get_settings(),
        dispatcher=dispatcher,
        payload={
            "aspect_type": "update",
            "object_type": "activity",
            "object_id": 42,
            "owner_id": 1,
            "updates": {"title": "Renamed"},
        },
    )

    assert response.status_code == 200
    assert response.body == b"EVENT_RECEIVED"
    assert dispatcher.events == []

    await background()
    assert [event.object_id for event in dispatcher.events] == [42]


def _event(aspect: str, object_type: str = "activity", object_id: int = 1) -> WebhookEvent:
    return WebhookEvent(
        aspect_type=aspect, object_type=object_type, object_id=object_id, owner_id=9
    )


def _token_service_with_live_token() -> StravaTokenService:
    service = StravaTokenService(RecordingAuthProxy(), clock=lambda: 0)
    service.remember(TokenBundle(access_token="live", refresh_token="r", expires_at=100_000))
    return service


@pytest.mark.parametrize(
    "event",
    [_event("delete"), _event("create", "athlete"), _event("update", "athlete")],
)
async def test_dispatcher_drops_non_resolvable_events(event):
    resolver = RecordingResolver()
    dispatcher = WebhookDispatcher(
        resolver=resolver, token_service=_token_service_with_live_token()
    )

    assert await dispatcher.dispatch(event) is None
    assert resolver.calls == []


@pytest.mark.parametrize("aspect", ["create", "update"])
async def test_dispatcher_resolves_activity_events_with_live_token(aspect):
    resolver = RecordingResolver()
    dispatcher = WebhookDispatcher(
        resolver=resolver, token_service=_token_service_with_live_token()
    )

    result = await dispatcher.dispatch(_event(aspect, object_id=12345))

    assert result.ok
    assert resolver.calls == [(12345, "live")]


async def test_dispatcher_without_live_token_reports_failure():
    resolver = RecordingResolver()
    dispatcher = WebhookDispatcher(
        resolver=resolver, token_service=StravaTokenService(RecordingAuthProxy())
    )

    result = await dispatcher.dispatch(_event("create"))

    assert not result.ok
    assert resolver.calls == []


async def test_dispatcher_never_raises():
    dispatcher = WebhookDispatcher(
        resolver=RecordingResolver(fail=True),
        token_service=_token_service_with_live_token(),
    )

    result = await dispatcher.dispatch(_event("create"))

    assert not result.ok
    assert "unexpected" in result.error

"""
FastAPI routes for the Strava activity sync service.
"""

from __future__ import annotations

import html
import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Body,
    Depends,
    HTTPException,
    Query,
    Request,
)
from fastapi.responses import (
    HTMLResponse,
    JSONResponse,
    PlainTextResponse,
    RedirectResponse,
)
from pydantic import ValidationError

from activity_sync.clients.auth_proxy import OAuthTokenExchangeError
from activity_sync.clients.strava import PlatformApiError
from activity_sync.dependencies import (
    ServiceUrls,
    get_activity_resolver,
    get_app_settings,
    get_auth_proxy_client,
    get_service_urls,
    get_strava_client,
    get_strava_token_service,
    get_subscription_manager,
    get_token_codec,
    get_verification_registry,
    get_webhook_dispatcher,
)
from activity_sync.models.oauth import TokenBundle
from activity_sync.schemas import WebhookEvent
from activity_sync.services.session_guard import TOKEN_COOKIE_MAX_AGE
from activity_sync.services.webhook import WebhookHandshakeRejected

router = APIRouter()
logger = logging.getLogger(__name__)

EVENT_ACK = "EVENT_RECEIVED"


def _check_webhook_secret(secret: str, settings: Any) -> None:
    if secret != settings.webhook.secret:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Not Found")


def _require_token(request: Request) -> TokenBundle:
    token = getattr(request.state, "strava_token", None)
    if token is None:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Strava account not connected.",
        )
    return token


def _upstream_error(exc: PlatformApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


# Webhooks


@router.post("/webhook-{secret}", response_class=PlainTextResponse)
async def receive_webhook_event(
    secret: str,
    background_tasks: BackgroundTasks,
    settings: Annotated[Any, Depends(get_app_settings)],
    dispatcher: Annotated[Any, Depends(get_webhook_dispatcher)],
    payload: dict = Body(default_factory=dict),
) -> PlainTextResponse:
    """Acknowledge a Strava event at once and resolve it after responding."""
    _check_webhook_secret(secret, settings)
    try:
        event = WebhookEvent.model_validate(payload)
    except ValidationError:
        logger.warning("Dropping unrecognized webhook payload: %s", payload)
    else:
        background_tasks.add_task(dispatcher.dispatch, event)
    return PlainTextResponse(EVENT_ACK, status_code=HTTPStatus.OK)


@router.get("/webhook-{secret}")
async def verify_webhook_subscription(
    secret: str,
    settings: Annotated[Any, Depends(get_app_settings)],
    registry: Annotated[Any, Depends(get_verification_registry)],
    mode: str | None = Query(None, alias="hub.mode"),
    verify_token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
) -> JSONResponse:
    """Answer the subscription validation request sent by Strava."""
    _check_webhook_secret(secret, settings)
    logger.info("Webhook challenge received")
    try:
        echoed = registry.verify(mode=mode, token=verify_token, challenge=challenge)
    except WebhookHandshakeRejected as exc:
        logger.warning("Webhook challenge rejected: %s", exc.reason)
        raise HTTPException(status_code=exc.status_code, detail=exc.reason) from exc
    logger.info("Responding OK to webhook challenge")
    return JSONResponse(content={"hub.challenge": echoed})


# Index


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    urls: Annotated[ServiceUrls, Depends(get_service_urls)],
    auth_proxy: Annotated[Any, Depends(get_auth_proxy_client)],
    subscriptions: Annotated[Any, Depends(get_subscription_manager)],
) -> HTMLResponse:
    token = getattr(request.state, "strava_token", None)
    subscription_id = await subscriptions.current_id() if token else None

    links = [f'<a href="{html.escape(auth_proxy.build_authorization_url())}">Connect Strava</a>']
    if token:
        links.append(f'<a href="{html.escape(urls.list_page)}">Recent activities</a>')
        if subscription_id:
            links.append(
                f'Subscription {html.escape(str(subscription_id))} '
                f'(<a href="{html.escape(urls.root)}/subscription/delete?id='
                f'{html.escape(str(subscription_id))}">delete</a>)'
            )
        else:
            links.append(
                f'<a href="{html.escape(urls.root)}/subscription/create">Create subscription</a>'
            )
    status = "connected" if token else "not connected"
    body = "".join(f"<li>{link}</li>" for link in links)
    return HTMLResponse(f"<p>Strava: {status}</p><ul>{body}</ul>")


# Activities


@router.get("/list")
async def list_activities(
    request: Request,
    strava: Annotated[Any, Depends(get_strava_client)],
    updated: int | None = Query(
        default=None, description="Activity id to flag as just synchronized."
    ),
) -> Any:
    """List recent activities straight from the Strava API."""
    token = _require_token(request)
    try:
        activities = await strava.list_activities(token.access_token)
    except PlatformApiError as exc:
        return _upstream_error(exc)
    for activity in activities:
        activity["just_updated"] = updated is not None and activity.get("id") == updated
    return {"updated": updated, "activities": activities}


@router.get("/view/{activity_id}")
async def view_activity(
    activity_id: int,
    request: Request,
    strava: Annotated[Any, Depends(get_strava_client)],
) -> Any:
    """Return the raw Strava JSON of one activity."""
    token = _require_token(request)
    try:
        return await strava.get_activity(activity_id, token.access_token)
    except PlatformApiError as exc:
        return _upstream_error(exc)


@router.get("/fetch/{activity_id}")
async def fetch_activity(
    activity_id: int,
    request: Request,
    resolver: Annotated[Any, Depends(get_activity_resolver)],
    urls: Annotated[ServiceUrls, Depends(get_service_urls)],
) -> RedirectResponse:
    """Synchronize one activity into the CMS, then show the list."""
    token = _require_token(request)
    result = await resolver.resolve(activity_id, token)
    if not result.ok:
        logger.error("Fetch of activity %s failed: %s", activity_id, result.error)
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=result.error)
    logger.info("Updated activity: %s", result.record_id)
    return RedirectResponse(
        f"{urls.list_page}?updated={activity_id}", status_code=HTTPStatus.FOUND
    )


# Subscription


@router.get("/subscription/create")
async def create_subscription(
    subscriptions: Annotated[Any, Depends(get_subscription_manager)],
    urls: Annotated[ServiceUrls, Depends(get_service_urls)],
) -> RedirectResponse:
    await subscriptions.create()
    return RedirectResponse(urls.root, status_code=HTTPStatus.FOUND)


@router.get("/subscription")
async def view_subscription(
    subscriptions: Annotated[Any, Depends(get_subscription_manager)],
) -> JSONResponse:
    return JSONResponse(content=await subscriptions.view())


@router.get("/subscription/delete")
async def delete_subscription(
    subscriptions: Annotated[Any, Depends(get_subscription_manager)],
    urls: Annotated[ServiceUrls, Depends(get_service_urls)],
    subscription_id: str = Query(..., alias="id"),
) -> RedirectResponse:
    await subscriptions.delete(subscription_id)
    return RedirectResponse(urls.root, status_code=HTTPStatus.FOUND)


# Auth


@router.get("/auth")
async def authenticate_athlete(
    auth_proxy: Annotated[Any, Depends(get_auth_proxy_client)],
    token_service: Annotated[Any, Depends(get_strava_token_service)],
    codec: Annotated[Any, Depends(get_token_codec)],
    settings: Annotated[Any, Depends(get_app_settings)],
    urls: Annotated[ServiceUrls, Depends(get_service_urls)],
    code: str | None = Query(None, description="Authorization code from Strava."),
) -> Any:
    """Show the Strava consent link, or complete the exchange for ``code``."""
    if not code:
        authorize_url = html.escape(auth_proxy.build_authorization_url())
        return HTMLResponse(f'<a href="{authorize_url}">Click Here To Authenticate</a>')

    try:
        bundle = await auth_proxy.exchange_authorization_code(code)
    except OAuthTokenExchangeError as exc:
        logger.warning("Athlete auth failed: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    logger.info("Athlete authed")
    token_service.remember(bundle)
    response = RedirectResponse(urls.root, status_code=HTTPStatus.FOUND)
    response.set_cookie(
        settings.strava.token_cookie,
        codec.encode(bundle),
        max_age=TOKEN_COOKIE_MAX_AGE,
        httponly=True,
    )
    return response


__all__ = ["EVENT_ACK", "router"]

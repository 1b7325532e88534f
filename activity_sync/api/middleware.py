"""
Middleware applying the session guard to browser-facing routes.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Callable, Iterable

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from activity_sync.clients.directus import SessionExpired
from activity_sync.services.session_guard import (
    GuardedSession,
    SessionGuard,
    TOKEN_COOKIE_MAX_AGE,
)

logger = logging.getLogger(__name__)


class SessionGuardMiddleware(BaseHTTPMiddleware):
    """Refresh both sessions before the route runs and write them back after."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        guard_provider: Callable[[], SessionGuard],
        login_url: str,
        exempt_prefixes: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self._guard_provider = guard_provider
        self._login_url = login_url
        self._exempt_prefixes = tuple(exempt_prefixes)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path.startswith(self._exempt_prefixes):
            return await call_next(request)

        guard = self._guard_provider()
        try:
            session = await guard.authorize(request.cookies)
        except SessionExpired as exc:
            logger.info("CMS session rejected, redirecting to login: %s", exc)
            return RedirectResponse(self._login_url, status_code=HTTPStatus.FOUND)

        request.state.strava_token = session.token
        response = await call_next(request)
        self._write_cookies(response, guard, session)
        return response

    @staticmethod
    def _write_cookies(
        response: Response, guard: SessionGuard, session: GuardedSession
    ) -> None:
        response.set_cookie(
            guard.cms_cookie_name,
            session.cms_refresh_token,
            max_age=session.cms_max_age,
            httponly=True,
        )
        if session.token_cookie is None:
            return
        # Routes that issue a new token (``/auth``) take precedence.
        already_set = any(
            value.startswith(f"{guard.token_cookie_name}=")
            for value in response.headers.getlist("set-cookie")
        )
        if not already_set:
            response.set_cookie(
                guard.token_cookie_name,
                session.token_cookie,
                max_age=TOKEN_COOKIE_MAX_AGE,
                httponly=True,
            )


__all__ = ["SessionGuardMiddleware"]

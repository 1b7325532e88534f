"""
FastAPI application entrypoint for the Strava activity sync service.
"""

from __future__ import annotations

from fastapi import FastAPI

from activity_sync.api.middleware import SessionGuardMiddleware
from activity_sync.api.routes import router as api_router
from activity_sync.core.config import get_settings
from activity_sync.core.logging import configure_logging
from activity_sync.dependencies import get_session_guard

# Strava and monitoring calls arrive without a browser session.
UNGUARDED_PREFIXES = ("/webhook-", "/health")


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Strava Activity Sync",
        version="0.1.0",
        description="Keeps Strava activities synchronized into a Directus collection.",
    )

    def provide_session_guard():
        factory = app.dependency_overrides.get(get_session_guard, get_session_guard)
        return factory()

    app.add_middleware(
        SessionGuardMiddleware,
        guard_provider=provide_session_guard,
        login_url=settings.cms.login_url,
        exempt_prefixes=UNGUARDED_PREFIXES,
    )
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]

"""
Strava OAuth utilities backed by the auth proxy.

The proxy holds the Strava client secret: it exchanges authorization codes,
refreshes tokens and manages the push subscription. This service only builds
the consent URL itself.
"""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from activity_sync.core.config import AuthProxySettings, StravaSettings
from activity_sync.models.oauth import TokenBundle

logger = logging.getLogger(__name__)


class AuthProxyError(Exception):
    """Base error for failed auth proxy calls."""


class OAuthTokenExchangeError(AuthProxyError):
    """Raised when an authorization code cannot be exchanged for tokens."""


class TokenRefreshFailed(AuthProxyError):
    """Raised when the proxy cannot refresh an access token."""


class AuthProxyClient:
    """Build Strava authorization URLs and call the auth proxy endpoints."""

    def __init__(
        self,
        proxy_settings: AuthProxySettings,
        strava_settings: StravaSettings,
        *,
        redirect_uri: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._proxy = proxy_settings
        self._strava = strava_settings
        self._redirect_uri = redirect_uri
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._proxy.url, timeout=10.0, transport=self._transport
        )

    def build_authorization_url(self) -> str:
        """Construct the Strava OAuth consent URL."""
        params = {
            "client_id": self._strava.client_id,
            "response_type": "code",
            "redirect_uri": self._redirect_uri,
            "approval_prompt": "force",
            "scope": self._strava.scope,
        }
        return f"{self._strava.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenBundle:
        """Exchange an authorization code for a token bundle."""
        try:
            async with self._client() as client:
                response = await client.get("/auth", params={"code": code})
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OAuthTokenExchangeError(str(exc)) from exc

        if response.is_error or not isinstance(payload, dict) or payload.get("errors"):
            raise OAuthTokenExchangeError(str(payload))
        try:
            return TokenBundle.model_validate(payload)
        except ValidationError as exc:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from the auth proxy."
            ) from exc

    async def refresh_token(self, refresh_token: str) -> TokenBundle:
        """Refresh the access token using the bundle's refresh token."""
        try:
            async with self._client() as client:
                response = await client.get(
                    "/refresh", params={"refresh_token": refresh_token}
                )
            response.raise_for_status()
            return TokenBundle.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise TokenRefreshFailed(str(exc)) from exc

    async def _subscription_call(self, method: str, params: Dict[str, Any] | None = None) -> Any:
        """Call the subscription endpoint and hand back whatever body it returns."""
        try:
            async with self._client() as client:
                response = await client.request(method, "/subscription", params=params)
        except httpx.HTTPError as exc:
            logger.warning("Auth proxy %s /subscription failed: %s", method, exc)
            return {"message": "Auth proxy unreachable.", "errors": [str(exc)]}
        if response.is_error:
            logger.warning(
                "Auth proxy %s /subscription answered %s", method, response.status_code
            )
        try:
            return response.json()
        except ValueError:
            return response.text

    async def create_subscription(self, *, callback_url: str, verify_token: str) -> Any:
        return await self._subscription_call(
            "POST", {"callback_url": callback_url, "verify_token": verify_token}
        )

    async def list_subscriptions(self) -> Any:
        return await self._subscription_call("GET")

    async def delete_subscription(self, subscription_id: str) -> Any:
        return await self._subscription_call("DELETE", {"id": subscription_id})


__all__ = [
    "AuthProxyClient",
    "AuthProxyError",
    "OAuthTokenExchangeError",
    "TokenRefreshFailed",
]

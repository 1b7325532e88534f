"""
Service helpers for managing the Strava push subscription.
"""

from __future__ import annotations

import logging
from typing import Any

from activity_sync.clients.auth_proxy import AuthProxyClient
from activity_sync.services.webhook import VerificationRegistry

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Create, inspect and delete the subscription through the auth proxy."""

    def __init__(
        self,
        *,
        auth_proxy: AuthProxyClient,
        registry: VerificationRegistry,
        callback_url: str,
    ) -> None:
        self._proxy = auth_proxy
        self._registry = registry
        self._callback_url = callback_url

    async def create(self) -> Any:
        pending = self._registry.issue()
        logger.info(
            "Requesting subscription (attempt %s) for %s",
            pending.attempt_id,
            self._callback_url,
        )
        result = await self._proxy.create_subscription(
            callback_url=self._callback_url, verify_token=pending.token
        )
        logger.info("Subscription create result: %s", result)
        return result

    async def view(self) -> Any:
        return await self._proxy.list_subscriptions()

    async def current_id(self) -> Any:
        """Return the id of the first active subscription, if any."""
        listing = await self.view()
        if isinstance(listing, list) and listing and isinstance(listing[0], dict):
            return listing[0].get("id")
        return None

    async def delete(self, subscription_id: str) -> Any:
        result = await self._proxy.delete_subscription(subscription_id)
        logger.info("Subscription %s delete result: %s", subscription_id, result)
        return result


__all__ = ["SubscriptionManager"]

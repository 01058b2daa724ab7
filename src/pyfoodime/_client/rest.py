"""Request/response access to the delivery API.

Every call is a single attempt. A 401/403 clears the session guard before
:class:`FoodimeAuthError` reaches the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pyfoodime._api.location import post_delivery_location
from pyfoodime._api.orders import fetch_delivery_orders, post_delivery_order_status
from pyfoodime._transport import Transport
from pyfoodime.exceptions import FoodimeAuthError
from pyfoodime.models.location import LocationSample
from pyfoodime.models.order import DeliveryStatus, Order
from pyfoodime.session import SessionGuard
from pyfoodime.state.store import OrderStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class RestSyncClient:
    """Snapshot fetch plus status and location mutations."""

    def __init__(self, transport: Transport, guard: SessionGuard, store: OrderStore) -> None:
        self._transport = transport
        self._guard = guard
        self._store = store

    async def _call(self, fn: Callable[[str], Awaitable[T]]) -> T:
        """Run an API call with the current token, clearing the session on 401/403."""
        token = self._guard.token
        try:
            return await fn(token)
        except FoodimeAuthError as exc:
            _logger.warning("Authorization rejected by %s: %s", exc.endpoint or "server", exc)
            self._guard.clear("authorization failure")
            raise

    async def fetch_snapshot(self) -> list[Order]:
        """Fetch all orders and merge them into the store.

        Returns the orders as the server listed them.
        """
        orders = await self._call(lambda token: fetch_delivery_orders(self._transport, token))
        self._store.replace_all(orders)
        _logger.debug("Fetched %d orders", len(orders))
        return orders

    async def post_status(self, order_id: int, status: DeliveryStatus) -> None:
        """Persist a status change; raises when the server refuses it."""
        await self._call(lambda token: post_delivery_order_status(self._transport, token, order_id, status))
        _logger.info("Order %s status updated to %s", order_id, status)

    async def post_location(self, sample: LocationSample) -> None:
        """Report one location sample; raises on failure, never retries."""
        await self._call(lambda token: post_delivery_location(self._transport, token, sample))
        _logger.debug(
            "Location sent: lat=%s lon=%s order=%s",
            sample.latitude,
            sample.longitude,
            sample.order_id,
        )

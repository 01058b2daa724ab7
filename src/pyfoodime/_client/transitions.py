"""Partner-initiated delivery status changes."""

from __future__ import annotations

import logging

from pyfoodime._client.rest import RestSyncClient
from pyfoodime.exceptions import FoodimeTransitionPendingError, FoodimeValidationError
from pyfoodime.models.order import DeliveryStatus, Order
from pyfoodime.state.policy import is_legal_transition
from pyfoodime.state.store import OrderStore

_logger = logging.getLogger(__name__)


class StatusTransitionController:
    """Validate, apply optimistically, persist, then confirm or roll back.

    At most one transition per order is in flight; a second request for
    the same order is rejected until the first resolves.
    """

    def __init__(self, store: OrderStore, rest: RestSyncClient) -> None:
        self._store = store
        self._rest = rest

    async def request_transition(self, order_id: int, target_status: DeliveryStatus | str) -> Order:
        """Move *order_id* to *target_status*.

        Raises
        ------
        FoodimeValidationError
            Unknown order or status, or *target_status* is not the single
            legal successor of the current status. Nothing is changed.
        FoodimeTransitionPendingError
            Another transition for this order is still in flight.
        FoodimeNetworkError, FoodimeAuthError
            The server refused or could not be reached; the order has been
            rolled back.
        """
        order = self._store.get(order_id)
        if order is None:
            raise FoodimeValidationError(f"Unknown order {order_id}")
        if self._store.is_pending(order_id):
            raise FoodimeTransitionPendingError(
                f"A status update for order {order_id} is already in progress",
                order_id=order_id,
            )

        target = DeliveryStatus(target_status)
        if target is DeliveryStatus.UNKNOWN:
            raise FoodimeValidationError(f"Unknown delivery status {target_status!r}")
        if not is_legal_transition(order.delivery_status, target):
            raise FoodimeValidationError(
                f"Order {order_id} cannot move from {order.delivery_status} to {target}"
            )

        previous = self._store.begin_optimistic_transition(order_id, target)
        try:
            await self._rest.post_status(order_id, target)
        except BaseException:
            self._store.rollback_transition(order_id, previous)
            _logger.warning("Status update for order %s to %s failed; rolled back to %s", order_id, target, previous)
            raise

        confirmed = self._store.confirm_transition(order_id)
        return confirmed if confirmed is not None else order

    async def advance(self, order_id: int) -> Order:
        """Move the order to the next stage of the delivery sequence."""
        order = self._store.get(order_id)
        if order is None:
            raise FoodimeValidationError(f"Unknown order {order_id}")
        successor = order.delivery_status.successor()
        if successor is None:
            raise FoodimeValidationError(f"Order {order_id} has no next stage after {order.delivery_status}")
        return await self.request_transition(order_id, successor)

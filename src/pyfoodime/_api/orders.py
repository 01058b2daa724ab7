"""Delivery order endpoints (snapshot listing and status updates)."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pyfoodime._api._common import require_success
from pyfoodime._constants import ORDER_STATUS_ENDPOINT, ORDERS_ENDPOINT
from pyfoodime._transport import Transport
from pyfoodime.exceptions import FoodimeApiError
from pyfoodime.models.order import DeliveryStatus, Order

_logger = logging.getLogger(__name__)


def parse_orders(data: object) -> list[Order]:
    """Validate the ``data`` list of a snapshot, skipping malformed entries."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise FoodimeApiError(
            f"{ORDERS_ENDPOINT} returned {type(data).__name__} instead of a list",
            endpoint=ORDERS_ENDPOINT,
        )

    orders: list[Order] = []
    for index, item in enumerate(data):
        try:
            orders.append(Order.model_validate(item))
        except ValidationError as exc:
            _logger.warning("Skipping malformed order at index %d: %s", index, exc.errors()[:1])
    return orders


async def fetch_delivery_orders(transport: Transport, token: str) -> list[Order]:
    """Fetch every order currently visible to the partner."""
    response = await transport.request("GET", ORDERS_ENDPOINT, token=token)
    data = require_success(ORDERS_ENDPOINT, response, default_message="Failed to fetch orders.")
    return parse_orders(data)


async def post_delivery_order_status(
    transport: Transport,
    token: str,
    order_id: int,
    status: DeliveryStatus,
) -> None:
    """Persist a partner-initiated status change."""
    response = await transport.request(
        "POST",
        ORDER_STATUS_ENDPOINT,
        token=token,
        payload={"order_id": order_id, "status": status.value},
    )
    require_success(ORDER_STATUS_ENDPOINT, response, default_message="Failed to update order status.")

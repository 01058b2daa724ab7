"""Realtime push event models.

Inbound websocket messages are JSON objects of the form
``{"type": str, "order_id"?: int, "new_status"?: str}``. Each known
``type`` maps to one model; everything else becomes
:class:`UnknownRealtimeEvent` and is ignored by the channel.
"""

from __future__ import annotations

import enum
from typing import Any, Literal

from pydantic import ValidationError, field_validator

from pyfoodime.models._base import FoodimeBaseModel
from pyfoodime.models.order import DeliveryStatus


class RealtimeEventType(enum.StrEnum):
    ORDER_STATUS_UPDATE = "order_status_update"
    NEW_ORDER_ASSIGNED = "new_order_assigned"
    ORDER_AVAILABLE = "order_available"


class OrderStatusUpdateEvent(FoodimeBaseModel):
    """Server-side status change for one order."""

    type: Literal["order_status_update"] = "order_status_update"
    order_id: int
    new_status: DeliveryStatus

    @field_validator("new_status")
    @classmethod
    def _reject_unknown(cls, value: DeliveryStatus) -> DeliveryStatus:
        if value is DeliveryStatus.UNKNOWN:
            raise ValueError("new_status is not a known delivery status")
        return value


class NewOrderAssignedEvent(FoodimeBaseModel):
    """An order was assigned to this partner (no order payload attached)."""

    type: Literal["new_order_assigned"] = "new_order_assigned"


class OrderAvailableEvent(FoodimeBaseModel):
    """An order became available for pickup (no order payload attached)."""

    type: Literal["order_available"] = "order_available"


class UnknownRealtimeEvent(FoodimeBaseModel):
    """Unrecognised or malformed message; dropped by the channel."""

    type: str = ""
    malformed: bool = False


RealtimeEvent = OrderStatusUpdateEvent | NewOrderAssignedEvent | OrderAvailableEvent | UnknownRealtimeEvent

_EVENT_MODELS: dict[str, type[FoodimeBaseModel]] = {
    RealtimeEventType.ORDER_STATUS_UPDATE: OrderStatusUpdateEvent,
    RealtimeEventType.NEW_ORDER_ASSIGNED: NewOrderAssignedEvent,
    RealtimeEventType.ORDER_AVAILABLE: OrderAvailableEvent,
}


def parse_realtime_event(payload: Any) -> RealtimeEvent:
    """Map a decoded JSON message onto its event model.

    Never raises: anything that does not validate is returned as an
    :class:`UnknownRealtimeEvent` with ``malformed=True``.
    """
    if not isinstance(payload, dict):
        return UnknownRealtimeEvent(malformed=True, raw={"payload": payload})

    kind = payload.get("type")
    model = _EVENT_MODELS.get(kind) if isinstance(kind, str) else None
    if model is None:
        return UnknownRealtimeEvent(type=str(kind or ""), raw=payload)

    try:
        event: RealtimeEvent = model.model_validate(payload)  # type: ignore[assignment]
    except ValidationError:
        return UnknownRealtimeEvent(type=str(kind), malformed=True, raw=payload)
    return event

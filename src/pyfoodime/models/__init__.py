"""Data models for Foodime API payloads."""

from pyfoodime.models._base import FoodimeBaseModel, FoodimeEnum
from pyfoodime.models.location import PERMISSION_TRANSITIONS, LocationSample, PermissionState, Position
from pyfoodime.models.order import (
    ORDER_SECTIONS,
    STATUS_SEQUENCE,
    CustomerAddress,
    DeliveryStatus,
    Order,
    OrderItem,
    Restaurant,
)
from pyfoodime.models.realtime import (
    NewOrderAssignedEvent,
    OrderAvailableEvent,
    OrderStatusUpdateEvent,
    RealtimeEvent,
    RealtimeEventType,
    UnknownRealtimeEvent,
    parse_realtime_event,
)
from pyfoodime.models.token import LoginResponse

__all__ = [
    "CustomerAddress",
    "DeliveryStatus",
    "FoodimeBaseModel",
    "FoodimeEnum",
    "LocationSample",
    "LoginResponse",
    "NewOrderAssignedEvent",
    "Order",
    "OrderAvailableEvent",
    "OrderItem",
    "OrderStatusUpdateEvent",
    "PermissionState",
    "Position",
    "RealtimeEvent",
    "RealtimeEventType",
    "Restaurant",
    "UnknownRealtimeEvent",
    "parse_realtime_event",
    "ORDER_SECTIONS",
    "PERMISSION_TRANSITIONS",
    "STATUS_SEQUENCE",
]

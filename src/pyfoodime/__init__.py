"""pyfoodime - Async Python client for the Foodime delivery-partner API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfoodime")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfoodime._client.location import LocationReporter, PositionProvider, StaticPositionProvider
from pyfoodime._realtime import ChannelState, RealtimeChannel
from pyfoodime.client import FoodimeClient
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import (
    FoodimeApiError,
    FoodimeAuthError,
    FoodimeChannelError,
    FoodimeConfigError,
    FoodimeError,
    FoodimeNetworkError,
    FoodimePermissionDeniedError,
    FoodimeRequestError,
    FoodimeSensorError,
    FoodimeSensorTimeoutError,
    FoodimeTransitionPendingError,
    FoodimeValidationError,
)
from pyfoodime.models import (
    CustomerAddress,
    DeliveryStatus,
    LocationSample,
    Order,
    OrderItem,
    PermissionState,
    Position,
    RealtimeEvent,
    Restaurant,
)
from pyfoodime.session import Session, SessionGuard
from pyfoodime.state.events import ChangeSource, OrderChange
from pyfoodime.state.store import OrderStore

__all__ = [
    "__version__",
    "ChangeSource",
    "ChannelState",
    "CustomerAddress",
    "DeliveryStatus",
    "FoodimeApiError",
    "FoodimeAuthError",
    "FoodimeChannelError",
    "FoodimeClient",
    "FoodimeConfig",
    "FoodimeConfigError",
    "FoodimeError",
    "FoodimeNetworkError",
    "FoodimePermissionDeniedError",
    "FoodimeRequestError",
    "FoodimeSensorError",
    "FoodimeSensorTimeoutError",
    "FoodimeTransitionPendingError",
    "FoodimeValidationError",
    "LocationReporter",
    "LocationSample",
    "Order",
    "OrderChange",
    "OrderItem",
    "OrderStore",
    "PermissionState",
    "Position",
    "PositionProvider",
    "RealtimeChannel",
    "RealtimeEvent",
    "Restaurant",
    "Session",
    "SessionGuard",
    "StaticPositionProvider",
]

"""Custom exception hierarchy for pyfoodime."""

from __future__ import annotations


class FoodimeError(Exception):
    """Base exception for all pyfoodime errors."""


class FoodimeConfigError(FoodimeError):
    """Invalid or missing configuration."""


class FoodimeRequestError(FoodimeError):
    """A request to the delivery API failed.

    ``status_code`` is the HTTP status when one was received and
    ``endpoint`` the path that was called.
    """

    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class FoodimeAuthError(FoodimeRequestError):
    """Login failed, or the session token was rejected (HTTP 401/403).

    Raised by every request path that receives an authorization failure.
    The session guard is always cleared before this propagates, so callers
    only need to route the user back to login.
    """


class FoodimeNetworkError(FoodimeRequestError):
    """Transport failure, non-2xx response or a body that is not JSON."""


class FoodimeApiError(FoodimeNetworkError):
    """API answered 2xx but reported ``success: false``."""


class FoodimeValidationError(FoodimeError, ValueError):
    """Request rejected locally before reaching the network."""


class FoodimeTransitionPendingError(FoodimeValidationError):
    """A status transition for the same order is already in flight."""

    def __init__(self, message: str, *, order_id: int) -> None:
        self.order_id = order_id
        super().__init__(message)


class FoodimeChannelError(FoodimeError):
    """Realtime channel closed or errored."""


class FoodimeSensorError(FoodimeError):
    """Position could not be acquired."""


class FoodimePermissionDeniedError(FoodimeSensorError):
    """Location permission was refused by the partner.

    This is persistent: the reporter stays idle until it is restarted
    after the permission changes.
    """


class FoodimeSensorTimeoutError(FoodimeSensorError):
    """Position acquisition exceeded its time bound (transient)."""

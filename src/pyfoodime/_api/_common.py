"""Shared helpers for Foodime API endpoint modules.

This module centralizes the repeated patterns:
- mapping HTTP status codes onto the exception hierarchy
- unwrapping ``{"success": ..., "data": ...}`` envelopes

It is internal to pyfoodime and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pyfoodime._constants import AUTH_FAILURE_STATUSES
from pyfoodime._transport import TransportResponse
from pyfoodime.exceptions import FoodimeApiError, FoodimeAuthError, FoodimeNetworkError


def raise_for_status(endpoint: str, response: TransportResponse, *, default_message: str) -> None:
    """Raise for 401/403 (auth) and any other non-2xx (network)."""
    if response.status in AUTH_FAILURE_STATUSES:
        raise FoodimeAuthError(
            response.message or "You are not authorized to perform this action.",
            status_code=response.status,
            endpoint=endpoint,
        )
    if not response.ok:
        raise FoodimeNetworkError(
            response.message or f"{default_message} (HTTP {response.status})",
            status_code=response.status,
            endpoint=endpoint,
        )


def require_success(endpoint: str, response: TransportResponse, *, default_message: str) -> Any:
    """Check status and the ``success`` flag; return the ``data`` member."""
    raise_for_status(endpoint, response, default_message=default_message)
    if response.body.get("success") is not True:
        raise FoodimeApiError(
            response.message or default_message,
            status_code=response.status,
            endpoint=endpoint,
        )
    return response.body.get("data")

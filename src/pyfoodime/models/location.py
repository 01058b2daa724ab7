"""Location sampling models."""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PermissionState(enum.StrEnum):
    """Location permission as reported by the position provider."""

    UNKNOWN = "unknown"
    PROMPT = "prompt"
    GRANTED = "granted"
    DENIED = "denied"


#: Allowed permission transitions. GRANTED and DENIED are terminal for the
#: lifetime of one reporter run; a restart begins again from UNKNOWN.
PERMISSION_TRANSITIONS: dict[PermissionState, frozenset[PermissionState]] = {
    PermissionState.UNKNOWN: frozenset({PermissionState.PROMPT, PermissionState.GRANTED, PermissionState.DENIED}),
    PermissionState.PROMPT: frozenset({PermissionState.GRANTED, PermissionState.DENIED}),
    PermissionState.GRANTED: frozenset(),
    PermissionState.DENIED: frozenset(),
}


class Position(BaseModel):
    """A single fix returned by a position provider."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    accuracy: float | None = None


class LocationSample(BaseModel):
    """One location report, tagged with the selected order if any.

    Parameters
    ----------
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    captured_at : datetime
        UTC time the fix was taken.
    order_id : int or None
        Order the partner is currently viewing.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    order_id: int | None = None

    @field_validator("captured_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_position(cls, position: Position, *, order_id: int | None) -> LocationSample:
        return cls(latitude=position.latitude, longitude=position.longitude, order_id=order_id)

    def to_request_body(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "order_id": self.order_id,
        }

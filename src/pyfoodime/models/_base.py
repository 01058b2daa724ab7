"""Shared base classes for Foodime payload models.

The delivery endpoints are served by WordPress, which is loose about
empty values: missing fields come back as ``""``, ``"--"`` or ``null``
depending on the plugin path. :class:`FoodimeBaseModel` drops those before
validation so field defaults apply, and keeps the untouched payload in
``raw`` for debugging.

:class:`FoodimeEnum` is a ``StrEnum`` that tolerates case and ``_``/``-``
differences and resolves anything else to ``UNKNOWN``.
"""

from __future__ import annotations

import enum
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_EMPTY_MARKERS = frozenset({"", "--", "NaN", "nan"})


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in _EMPTY_MARKERS
    return isinstance(value, float) and math.isnan(value)


def drop_empty(values: dict[str, Any]) -> dict[str, Any]:
    """Copy of *values* without keys whose value means "not available"."""
    return {key: value for key, value in values.items() if not _is_empty(value)}


class FoodimeEnum(enum.StrEnum):
    """String enum with an ``UNKNOWN`` fallback.

    Subclasses must define ``UNKNOWN``.
    """

    @classmethod
    def _missing_(cls, value: object) -> FoodimeEnum:
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        unknown: FoodimeEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class FoodimeBaseModel(BaseModel):
    """Frozen base for models parsed from API payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, repr=False, exclude=True)
    """Payload as received (never part of ``model_dump``)."""

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned = drop_empty(values)
        # An explicit raw= (e.g. when the store rebuilds an order) wins.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned

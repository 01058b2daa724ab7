"""Change notifications emitted by the order store.

Every accepted mutation produces exactly one :class:`OrderChange`; store
listeners (typically the UI boundary) use it to refresh what they show.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ChangeSource(StrEnum):
    SNAPSHOT = "snapshot"
    DELTA = "delta"
    OPTIMISTIC = "optimistic"
    CONFIRM = "confirm"
    ROLLBACK = "rollback"
    SELECTION = "selection"
    CLEAR = "clear"


class OrderChange(BaseModel):
    """What changed in the store, and why."""

    model_config = ConfigDict(frozen=True)

    source: ChangeSource
    order_ids: tuple[int, ...] = ()
    removed_ids: tuple[int, ...] = ()
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

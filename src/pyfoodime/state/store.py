"""Deterministic in-memory order store.

This is the only component allowed to mutate orders. Every public
mutator runs to completion without awaiting, so coroutines interleaving
on the event loop never observe a half-applied order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from pyfoodime.exceptions import FoodimeTransitionPendingError, FoodimeValidationError
from pyfoodime.models.order import ORDER_SECTIONS, DeliveryStatus, Order
from pyfoodime.state.events import ChangeSource, OrderChange
from pyfoodime.state.policy import is_regression

_logger = logging.getLogger(__name__)

# Fields a delta may never touch.
_PROTECTED_FIELDS = frozenset({"id", "revision", "raw"})

StoreListener = Callable[[OrderChange], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PendingTransition(BaseModel):
    model_config = ConfigDict(frozen=True)

    previous_status: DeliveryStatus
    target_status: DeliveryStatus
    started_at: datetime


class OrderStore:
    """In-memory table of orders plus the currently selected order.

    The store is designed to be deterministic: given the same sequence of
    snapshots, deltas and transitions it produces the same state, and a
    repeated snapshot or delta leaves it untouched.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._orders: dict[int, Order] = {}
        self._pending: dict[int, PendingTransition] = {}
        self._selected_id: int | None = None
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def orders(self) -> list[Order]:
        """Orders in snapshot order."""
        return list(self._orders.values())

    def get(self, order_id: int) -> Order | None:
        return self._orders.get(order_id)

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def is_pending(self, order_id: int) -> bool:
        return order_id in self._pending

    def pending_transition(self, order_id: int) -> PendingTransition | None:
        return self._pending.get(order_id)

    @property
    def selected_order_id(self) -> int | None:
        return self._selected_id

    @property
    def selected_order(self) -> Order | None:
        if self._selected_id is None:
            return None
        return self._orders.get(self._selected_id)

    def partition(self) -> dict[str, list[Order]]:
        """Group orders into the panel sections (new, active, completed)."""
        sections: dict[str, list[Order]] = {name: [] for name in ORDER_SECTIONS}
        for order in self._orders.values():
            for name, statuses in ORDER_SECTIONS.items():
                if order.delivery_status in statuses:
                    sections[name].append(order)
                    break
        return sections

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Call *listener* after every accepted change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self, source: ChangeSource, order_ids: Iterable[int] = (), removed_ids: Iterable[int] = ()) -> None:
        change = OrderChange(
            source=source,
            order_ids=tuple(order_ids),
            removed_ids=tuple(removed_ids),
            observed_at=self._clock(),
        )
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.warning("Order store listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Snapshot and delta merges
    # ------------------------------------------------------------------

    def replace_all(self, orders: Iterable[Order]) -> None:
        """Merge a full snapshot.

        Orders absent from the snapshot are removed, except those with a
        pending transition: their local copy is kept, as it is for pending
        orders the snapshot does list.
        """
        merged: dict[int, Order] = {}
        changed: list[int] = []

        for incoming in orders:
            order_id = incoming.id
            if order_id in merged:
                _logger.debug("Duplicate order %s in snapshot; keeping the first copy", order_id)
                continue
            current = self._orders.get(order_id)
            if current is not None and order_id in self._pending:
                merged[order_id] = current
            elif current is None:
                merged[order_id] = incoming.model_copy(update={"revision": 0})
                changed.append(order_id)
            elif current.same_content(incoming):
                merged[order_id] = current
            else:
                merged[order_id] = incoming.model_copy(update={"revision": current.revision})
                changed.append(order_id)

        for order_id, current in self._orders.items():
            if order_id not in merged and order_id in self._pending:
                merged[order_id] = current

        removed = [order_id for order_id in self._orders if order_id not in merged]
        self._orders = merged
        if self._selected_id is not None and self._selected_id not in merged:
            self._selected_id = None

        if changed or removed:
            self._notify(ChangeSource.SNAPSHOT, changed, removed)

    def apply_delta(self, order_id: int, patch: Mapping[str, Any]) -> Order | None:
        """Apply an incremental update pushed by the server.

        Returns the resulting order, or ``None`` when the delta was dropped
        (unknown order, invalid fields, or a status regression).
        """
        current = self._orders.get(order_id)
        if current is None:
            _logger.debug("Ignoring delta for unknown order %s", order_id)
            return None

        fields = {key: value for key, value in patch.items() if key in Order.model_fields and key not in _PROTECTED_FIELDS}
        if not fields:
            return current

        try:
            candidate = Order.model_validate({**current.model_dump(), **fields, "raw": current.raw})
        except ValidationError:
            _logger.warning("Anomalous delta for order %s rejected: %s", order_id, dict(patch))
            return None

        if is_regression(current.delivery_status, candidate.delivery_status):
            _logger.warning(
                "Anomalous delta for order %s rejected: status %s -> %s moves backward",
                order_id,
                current.delivery_status,
                candidate.delivery_status,
            )
            return None

        if candidate.same_content(current):
            return current

        updated = candidate.model_copy(update={"revision": current.revision + 1})
        self._orders[order_id] = updated
        self._notify(ChangeSource.DELTA, (order_id,))
        return updated

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_order(self, order_id: int | None) -> None:
        """Set the order in focus (``None`` clears the selection)."""
        if order_id is not None and order_id not in self._orders:
            raise FoodimeValidationError(f"Unknown order {order_id}")
        if order_id == self._selected_id:
            return
        self._selected_id = order_id
        self._notify(ChangeSource.SELECTION, () if order_id is None else (order_id,))

    # ------------------------------------------------------------------
    # Optimistic transitions (two-phase: begin, then confirm or roll back)
    # ------------------------------------------------------------------

    def begin_optimistic_transition(self, order_id: int, new_status: DeliveryStatus) -> DeliveryStatus:
        """Mark the order pending and show *new_status* immediately.

        Returns the status the order had before, for a later rollback.
        """
        current = self._orders.get(order_id)
        if current is None:
            raise FoodimeValidationError(f"Unknown order {order_id}")
        if order_id in self._pending:
            raise FoodimeTransitionPendingError(
                f"A status update for order {order_id} is already in progress",
                order_id=order_id,
            )

        previous = current.delivery_status
        self._pending[order_id] = PendingTransition(
            previous_status=previous,
            target_status=new_status,
            started_at=self._clock(),
        )
        self._orders[order_id] = current.model_copy(
            update={"delivery_status": new_status, "revision": current.revision + 1}
        )
        self._notify(ChangeSource.OPTIMISTIC, (order_id,))
        return previous

    def confirm_transition(self, order_id: int) -> Order | None:
        """Server accepted the change: drop the pending flag, keep the state."""
        if self._pending.pop(order_id, None) is not None:
            self._notify(ChangeSource.CONFIRM, (order_id,))
        return self._orders.get(order_id)

    def rollback_transition(self, order_id: int, previous_status: DeliveryStatus) -> Order | None:
        """Server refused the change: restore *previous_status*.

        When a delta moved the order on while the request was in flight,
        the pushed state is newer than both and is kept.
        """
        pending = self._pending.pop(order_id, None)
        current = self._orders.get(order_id)
        if current is None:
            return None

        if pending is not None and current.delivery_status is not pending.target_status:
            _logger.info(
                "Order %s moved to %s while its update was in flight; keeping it",
                order_id,
                current.delivery_status,
            )
            self._notify(ChangeSource.ROLLBACK, (order_id,))
            return current

        if current.delivery_status is not previous_status:
            current = current.model_copy(update={"delivery_status": previous_status, "revision": current.revision + 1})
            self._orders[order_id] = current
        self._notify(ChangeSource.ROLLBACK, (order_id,))
        return current

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Forget every order, pending transition and the selection."""
        if not self._orders and not self._pending and self._selected_id is None:
            return
        removed = list(self._orders)
        self._orders = {}
        self._pending = {}
        self._selected_id = None
        self._notify(ChangeSource.CLEAR, removed_ids=removed)

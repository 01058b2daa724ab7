"""Deterministic merge policy for the order store.

Precedence when sources disagree about the same order:

- a pending optimistic transition beats any snapshot;
- a realtime delta beats both, unless it moves the status backward.
"""

from __future__ import annotations

from pyfoodime.models.order import DeliveryStatus


def is_regression(current: DeliveryStatus, incoming: DeliveryStatus) -> bool:
    """Whether *incoming* sits earlier in the delivery sequence than *current*."""
    return incoming.rank() < current.rank()


def is_legal_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    """Partner-initiated changes must be exactly one step forward."""
    return current.successor() is target

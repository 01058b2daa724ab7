"""Reconnect backoff for the realtime channel."""

from __future__ import annotations

import random
from collections.abc import Callable

# Exponent ceiling; the cap is reached long before this.
_MAX_EXPONENT = 32


class Backoff:
    """Exponential backoff with proportional jitter.

    The base delay is ``initial * 2**attempts`` capped at ``maximum``.
    Jitter multiplies the base by ``1 + jitter * r`` with ``r`` in
    ``[0, 1)`` and the result is capped again. With ``jitter <= 1`` a
    jittered delay never exceeds the next base delay, so consecutive
    delays are non-decreasing.
    """

    def __init__(
        self,
        *,
        initial: float,
        maximum: float,
        jitter: float = 0.0,
        rand: Callable[[], float] = random.random,
    ) -> None:
        if initial <= 0 or maximum < initial:
            raise ValueError("backoff requires 0 < initial <= maximum")
        if not 0.0 <= jitter <= 1.0:
            raise ValueError("jitter must be within [0, 1]")
        self._initial = initial
        self._maximum = maximum
        self._jitter = jitter
        self._rand = rand
        self._attempts = 0

    @property
    def attempts(self) -> int:
        """Consecutive failures since the last reset."""
        return self._attempts

    def base_delay(self) -> float:
        """Un-jittered delay the next failure will wait."""
        return min(self._maximum, self._initial * 2 ** min(self._attempts, _MAX_EXPONENT))

    def next_delay(self) -> float:
        """Record one failure and return how long to wait before retrying."""
        base = self.base_delay()
        self._attempts += 1
        return min(self._maximum, base * (1.0 + self._jitter * self._rand()))

    def reset(self) -> None:
        self._attempts = 0

"""Periodic location reporting for the active session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pyfoodime._client.rest import RestSyncClient
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import (
    FoodimeAuthError,
    FoodimeNetworkError,
    FoodimeSensorError,
    FoodimeSensorTimeoutError,
)
from pyfoodime.models.location import PERMISSION_TRANSITIONS, LocationSample, PermissionState, Position
from pyfoodime.session import SessionGuard
from pyfoodime.state.store import OrderStore

_logger = logging.getLogger(__name__)


class PositionProvider(Protocol):
    """Source of device positions.

    ``request_permission`` is only called while the permission is
    ``PROMPT`` and should return whether the partner granted it.
    It may raise :class:`FoodimePermissionDeniedError` instead of returning
    ``False``. ``current_position`` raises :class:`FoodimeSensorError` when
    no fix is available.
    """

    async def query_permission(self) -> PermissionState: ...

    async def request_permission(self) -> bool: ...

    async def current_position(self) -> Position: ...


class StaticPositionProvider:
    """Provider that always reports the same fix (permission pre-granted)."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._position = Position(latitude=latitude, longitude=longitude)

    async def query_permission(self) -> PermissionState:
        return PermissionState.GRANTED

    async def request_permission(self) -> bool:
        return True

    async def current_position(self) -> Position:
        return self._position


class LocationReporter:
    """Samples the provider every ``location_interval`` seconds and reports it.

    A failed tick (timeout, sensor error, rejected report) is logged and
    skipped; only :meth:`stop` ends the loop.
    """

    def __init__(
        self,
        config: FoodimeConfig,
        provider: PositionProvider,
        store: OrderStore,
        rest: RestSyncClient,
        guard: SessionGuard,
        *,
        on_permission_change: Callable[[PermissionState], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._provider = provider
        self._store = store
        self._rest = rest
        self._guard = guard
        self._on_permission_change = on_permission_change
        self._sleep = sleep
        self._permission = PermissionState.UNKNOWN
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def permission(self) -> PermissionState:
        return self._permission

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Permission state machine
    # ------------------------------------------------------------------

    def _transition(self, state: PermissionState) -> None:
        if state is self._permission:
            return
        if state not in PERMISSION_TRANSITIONS[self._permission]:
            raise FoodimeSensorError(f"Illegal permission transition {self._permission} -> {state}")
        self._permission = state
        _logger.debug("Location permission is now %s", state)
        if self._on_permission_change is not None:
            try:
                self._on_permission_change(state)
            except Exception:
                _logger.debug("on_permission_change callback failed", exc_info=True)

    async def _resolve_permission(self) -> PermissionState:
        try:
            answer = await self._provider.query_permission()
        except FoodimeSensorError:
            _logger.warning("Could not query location permission", exc_info=True)
            answer = PermissionState.DENIED
        if answer is PermissionState.UNKNOWN:
            answer = PermissionState.PROMPT
        self._transition(answer)

        if self._permission is PermissionState.PROMPT:
            try:
                granted = await self._provider.request_permission()
            except FoodimeSensorError:
                _logger.warning("Location permission request failed", exc_info=True)
                granted = False
            self._transition(PermissionState.GRANTED if granted else PermissionState.DENIED)

        return self._permission

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> PermissionState:
        """Resolve permission and, when granted, arm the reporting loop.

        Returns the resolved permission. ``DENIED`` leaves the reporter
        idle; it is persistent until the reporter is started again.
        """
        if self.is_running:
            return self._permission
        self._stopped = False
        self._permission = PermissionState.UNKNOWN

        state = await self._resolve_permission()
        if state is PermissionState.DENIED:
            _logger.warning(
                "Location permission denied. Location tracking is essential for delivery; "
                "enable it in the device settings."
            )
            return state
        # stop() may have run while the permission prompt was open.
        if self._stopped:
            return state

        self._task = asyncio.get_running_loop().create_task(self._run(), name="pyfoodime-location")
        _logger.info("Location reporting started (every %.0fs)", self._config.location_interval)
        return state

    def stop(self, _reason: str = "") -> None:
        """Cancel the reporting loop. Idempotent; safe from inside a tick."""
        self._stopped = True
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()
        _logger.info("Location reporting stopped")

    async def aclose(self) -> None:
        task = self._task
        self.stop()
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> LocationReporter:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _run(self) -> None:
        while not self._stopped:
            await self._sleep(self._config.location_interval)
            if self._stopped:
                break
            try:
                await self.tick()
            except Exception:
                _logger.warning("Location tick failed; retrying next interval", exc_info=True)

    # ------------------------------------------------------------------
    # One tick
    # ------------------------------------------------------------------

    async def _acquire(self) -> Position:
        try:
            return await asyncio.wait_for(self._provider.current_position(), self._config.location_timeout)
        except TimeoutError as exc:
            raise FoodimeSensorTimeoutError(
                f"No position within {self._config.location_timeout:.0f}s"
            ) from exc

    async def tick(self) -> bool:
        """Sample once and report. Returns whether a report was accepted."""
        if self._permission is not PermissionState.GRANTED:
            return False
        if self._stopped or not self._guard.is_authenticated():
            return False

        try:
            position = await self._acquire()
        except FoodimeSensorError as exc:
            _logger.warning("Skipping location tick: %s", exc)
            return False

        sample = LocationSample.from_position(position, order_id=self._store.selected_order_id)
        try:
            await self._rest.post_location(sample)
        except FoodimeAuthError:
            # The guard has already been cleared, which stops this reporter.
            return False
        except FoodimeNetworkError as exc:
            _logger.warning("Failed to send location: %s", exc)
            return False
        return True

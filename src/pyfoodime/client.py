"""High-level async client for the Foodime delivery-partner API."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pyfoodime._api.login import login as _login
from pyfoodime._client.location import LocationReporter, PositionProvider
from pyfoodime._client.rest import RestSyncClient
from pyfoodime._client.transitions import StatusTransitionController
from pyfoodime._realtime import ChannelState, RealtimeChannel
from pyfoodime._storage import SessionStorage
from pyfoodime._transport import HttpTransport, Transport
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import FoodimeAuthError, FoodimeError, FoodimeValidationError
from pyfoodime.models.location import PermissionState
from pyfoodime.models.order import DeliveryStatus, Order
from pyfoodime.models.realtime import RealtimeEvent
from pyfoodime.session import Session, SessionGuard
from pyfoodime.state.events import OrderChange
from pyfoodime.state.store import OrderStore

_logger = logging.getLogger(__name__)


def _cancel_unless_current(task: asyncio.Task[Any] | None) -> None:
    if task is None or task.done():
        return
    try:
        current = asyncio.current_task()
    except RuntimeError:
        current = None
    if task is not current:
        task.cancel()


class FoodimeClient:
    """Async client for the Foodime delivery-partner API.

    Usage::

        async with FoodimeClient(config, position_provider=provider) as client:
            if not client.restore_session():
                await client.login("rider@example.com", "secret")
            orders = await client.start()
            await client.advance(orders[0].id)

    Any 401/403 clears the session, stops realtime updates and location
    reporting, empties the store and calls ``on_logout``.
    """

    def __init__(
        self,
        config: FoodimeConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        position_provider: PositionProvider | None = None,
        on_logout: Callable[[str], None] | None = None,
        on_orders_changed: Callable[[OrderChange], None] | None = None,
        on_realtime_event: Callable[[RealtimeEvent], None] | None = None,
        on_connectivity_degraded: Callable[[bool], None] | None = None,
        on_permission_change: Callable[[PermissionState], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._position_provider = position_provider
        self._on_logout = on_logout
        self._on_realtime_event = on_realtime_event
        self._on_connectivity_degraded = on_connectivity_degraded
        self._on_permission_change = on_permission_change

        storage = SessionStorage(config.session_file) if config.session_file is not None else None
        self._guard = SessionGuard(storage)
        self._store = OrderStore()
        if on_orders_changed is not None:
            self._store.add_listener(on_orders_changed)

        self._rest: RestSyncClient | None = None
        self._transitions: StatusTransitionController | None = None
        self._channel: RealtimeChannel | None = None
        self._reporter: LocationReporter | None = None
        self._poll_task: asyncio.Task[None] | None = None

        # Teardown order matters: stop producers before clearing the store,
        # and tell the UI last.
        self._guard.add_teardown(self._close_channel)
        self._guard.add_teardown(self._stop_location)
        self._guard.add_teardown(self._stop_polling)
        self._guard.add_teardown(lambda _reason: self._store.clear())
        self._guard.add_teardown(self._signal_logout)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FoodimeClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        self._rest = RestSyncClient(self._transport, self._guard, self._store)
        self._transitions = StatusTransitionController(self._store, self._rest)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        # Leaving the context releases resources but keeps the persisted
        # session, so the next run can restore it.
        await self._shutdown()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._rest = None
        self._transitions = None

    async def _shutdown(self) -> None:
        channel, self._channel = self._channel, None
        reporter, self._reporter = self._reporter, None
        poll_task, self._poll_task = self._poll_task, None
        if channel is not None:
            await channel.aclose()
        if reporter is not None:
            await reporter.aclose()
        if poll_task is not None and not poll_task.done():
            poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poll_task

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def store(self) -> OrderStore:
        return self._store

    @property
    def guard(self) -> SessionGuard:
        return self._guard

    @property
    def session(self) -> Session | None:
        return self._guard.session

    @property
    def channel_state(self) -> ChannelState:
        return self._channel.state if self._channel is not None else ChannelState.DISCONNECTED

    @property
    def connectivity_degraded(self) -> bool:
        return self._channel is not None and self._channel.degraded

    @property
    def location_permission(self) -> PermissionState:
        return self._reporter.permission if self._reporter is not None else PermissionState.UNKNOWN

    def _require_rest(self) -> RestSyncClient:
        if self._rest is None:
            raise FoodimeError("Client not initialized. Use 'async with FoodimeClient(...) as client:'")
        return self._rest

    def _require_transitions(self) -> StatusTransitionController:
        if self._transitions is None:
            raise FoodimeError("Client not initialized. Use 'async with FoodimeClient(...) as client:'")
        return self._transitions

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, username: str | None = None, password: str | None = None) -> Session:
        """Authenticate the partner and persist the session record."""
        user = username if username is not None else self._config.username
        pwd = password if password is not None else self._config.password
        if not user or not pwd:
            raise FoodimeValidationError("Username and password are required.")
        if self._transport is None:
            raise FoodimeError("Client not initialized. Use 'async with FoodimeClient(...) as client:'")
        session = await _login(self._transport, user, pwd)
        self._guard.establish(session)
        return session

    def restore_session(self) -> bool:
        """Reuse the persisted session record, if there is one."""
        return self._guard.restore()

    def logout(self) -> None:
        """Drop the session and release everything tied to it."""
        self._guard.clear("logout")

    # ------------------------------------------------------------------
    # Session runtime
    # ------------------------------------------------------------------

    async def start(self) -> list[Order]:
        """Start realtime updates, load orders, then start location reporting.

        A failing snapshot is raised to the caller (retry with
        :meth:`refresh_orders`); the channel and reporter keep running.
        """
        rest = self._require_rest()
        if not self._guard.is_authenticated():
            raise FoodimeAuthError("Not authenticated. Log in first.")

        if self._config.realtime_enabled and (self._channel is None or self._channel.closed):
            if self._http_session is None:
                _logger.debug("No aiohttp session available; realtime channel disabled")
            else:
                self._channel = RealtimeChannel(
                    self._config,
                    self._http_session,
                    self._store,
                    resync=rest.fetch_snapshot,
                    on_event=self._on_realtime_event,
                    on_degraded=self._on_channel_degraded,
                    logger=_logger,
                )
                self._channel.start()

        # Orders load before the (possibly slow) permission prompt.
        try:
            return await rest.fetch_snapshot()
        finally:
            if (
                self._config.location_enabled
                and self._position_provider is not None
                and self._guard.is_authenticated()
            ):
                await self.start_location()

    async def refresh_orders(self) -> list[Order]:
        """Fetch a fresh snapshot (manual retry path)."""
        return await self._require_rest().fetch_snapshot()

    async def start_location(self) -> PermissionState:
        """(Re)start location reporting, e.g. when returning to the tracking view."""
        if self._position_provider is None:
            raise FoodimeValidationError("No position provider configured")
        if not self._guard.is_authenticated():
            raise FoodimeAuthError("Not authenticated. Log in first.")
        if self._reporter is None:
            self._reporter = LocationReporter(
                self._config,
                self._position_provider,
                self._store,
                self._require_rest(),
                self._guard,
                on_permission_change=self._on_permission_change,
            )
        return await self._reporter.start()

    def stop_location(self) -> None:
        """Stop location reporting (navigation away from the tracking view)."""
        if self._reporter is not None:
            self._reporter.stop("navigation")

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def select_order(self, order_id: int | None) -> None:
        self._store.select_order(order_id)

    async def request_transition(self, order_id: int, status: DeliveryStatus | str) -> Order:
        return await self._require_transitions().request_transition(order_id, status)

    async def advance(self, order_id: int) -> Order:
        """Move the order to its next delivery stage."""
        return await self._require_transitions().advance(order_id)

    # ------------------------------------------------------------------
    # Degraded connectivity fallback
    # ------------------------------------------------------------------

    def _on_channel_degraded(self, degraded: bool) -> None:
        if degraded:
            self._start_polling()
        else:
            self._stop_polling()
        if self._on_connectivity_degraded is not None:
            try:
                self._on_connectivity_degraded(degraded)
            except Exception:
                _logger.debug("on_connectivity_degraded callback failed", exc_info=True)

    def _start_polling(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_orders(), name="pyfoodime-poll")

    def _stop_polling(self, _reason: str = "") -> None:
        task, self._poll_task = self._poll_task, None
        _cancel_unless_current(task)

    async def _poll_orders(self) -> None:
        rest = self._require_rest()
        while True:
            await asyncio.sleep(self._config.fallback_poll_interval)
            try:
                await rest.fetch_snapshot()
            except FoodimeAuthError:
                return
            except FoodimeError as exc:
                _logger.warning("Fallback order poll failed: %s", exc)

    # ------------------------------------------------------------------
    # Session teardown callbacks
    # ------------------------------------------------------------------

    def _close_channel(self, reason: str) -> None:
        if self._channel is not None:
            self._channel.close(reason)

    def _stop_location(self, reason: str) -> None:
        if self._reporter is not None:
            self._reporter.stop(reason)

    def _signal_logout(self, reason: str) -> None:
        if self._on_logout is not None:
            self._on_logout(reason)

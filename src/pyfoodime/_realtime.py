"""Realtime push channel: websocket runtime, reconnect loop and event dispatch."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from pyfoodime._backoff import Backoff
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import FoodimeAuthError, FoodimeChannelError, FoodimeError
from pyfoodime.models.realtime import (
    NewOrderAssignedEvent,
    OrderAvailableEvent,
    OrderStatusUpdateEvent,
    RealtimeEvent,
    UnknownRealtimeEvent,
    parse_realtime_event,
)
from pyfoodime.state.store import OrderStore


class ChannelState(enum.StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class RealtimeChannel:
    """Persistent websocket connection feeding the order store.

    Lifecycle: ``DISCONNECTED → CONNECTING → CONNECTED → DISCONNECTED`` and,
    after a backoff delay, ``CONNECTING`` again. :meth:`close` ends the
    cycle for good; a closed channel is never restarted (create a new one
    for a new session).
    """

    def __init__(
        self,
        config: FoodimeConfig,
        http_session: aiohttp.ClientSession,
        store: OrderStore,
        *,
        resync: Callable[[], Awaitable[Any]],
        on_event: Callable[[RealtimeEvent], None] | None = None,
        on_state_change: Callable[[ChannelState], None] | None = None,
        on_degraded: Callable[[bool], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._store = store
        self._resync = resync
        self._on_event = on_event
        self._on_state_change = on_state_change
        self._on_degraded = on_degraded
        self._clock = clock
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)
        self._backoff = Backoff(
            initial=config.backoff_initial,
            maximum=config.backoff_max,
            jitter=config.backoff_jitter,
            rand=rand,
        )
        self._state = ChannelState.DISCONNECTED
        self._degraded = False
        self._closed = False
        self._task: asyncio.Task[None] | None = None
        self._resync_task: asyncio.Task[None] | None = None
        self._resync_again = False

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def degraded(self) -> bool:
        """Whether reconnects have failed often enough to warn the partner."""
        return self._degraded

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def backoff(self) -> Backoff:
        return self._backoff

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the connection loop on the running event loop."""
        if self._closed:
            raise FoodimeChannelError("Realtime channel is closed")
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pyfoodime-realtime")

    def close(self, _reason: str = "") -> None:
        """Stop the channel: no further connects, reconnect sleeps or resyncs.

        Safe to call repeatedly and from inside the channel's own tasks.
        """
        if self._closed:
            return
        self._closed = True
        self._logger.debug("Realtime channel close requested")
        current = _current_task()
        for task in (self._task, self._resync_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._set_state(ChannelState.DISCONNECTED)
        self._set_degraded(False)

    async def aclose(self) -> None:
        """Close and wait until the background tasks have finished."""
        self.close()
        current = _current_task()
        for task in (self._task, self._resync_task):
            if task is None or task is current:
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Connection loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        try:
            while not self._closed:
                connected_for = await self._connect_once()
                if self._closed:
                    break
                if connected_for is not None and connected_for >= self._config.backoff_stable_period:
                    self._backoff.reset()
                delay = self._backoff.next_delay()
                if self._backoff.attempts >= self._config.degraded_after_failures:
                    self._set_degraded(True)
                self._logger.info(
                    "Realtime channel reconnecting in %.1fs (attempt %d)",
                    delay,
                    self._backoff.attempts,
                )
                await self._sleep(delay)
        finally:
            self._set_state(ChannelState.DISCONNECTED)

    async def _connect_once(self) -> float | None:
        """Hold one connection until it ends.

        Returns how long it stayed connected, or ``None`` if it never
        connected.
        """
        self._set_state(ChannelState.CONNECTING)
        connected_at: float | None = None
        try:
            async with self._http.ws_connect(self._config.websocket_url) as ws:
                connected_at = self._clock()
                self._set_state(ChannelState.CONNECTED)
                self._set_degraded(False)
                self._logger.info("Realtime channel connected to %s", self._config.websocket_url)
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self._handle_text(msg.data)
                    elif msg.type == aiohttp.WSMsgType.BINARY:
                        self._handle_text(msg.data.decode("utf-8", errors="replace"))
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise FoodimeChannelError(f"Websocket error: {ws.exception()}")
                    if self._closed:
                        break
                else:
                    self._logger.info("Realtime channel closed by server")
        except FoodimeChannelError as exc:
            self._logger.info("%s", exc)
        except (aiohttp.ClientError, OSError, TimeoutError) as exc:
            self._logger.info("Realtime connection failed: %s", exc)
        finally:
            self._set_state(ChannelState.DISCONNECTED)

        if connected_at is None:
            return None
        return self._clock() - connected_at

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _handle_text(self, data: str) -> None:
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, TypeError):
            self._logger.debug("Dropping non-JSON realtime message: %.120s", data)
            return
        self.dispatch(parse_realtime_event(payload))

    def dispatch(self, event: RealtimeEvent) -> None:
        """Route one parsed event into the store or a resync."""
        if isinstance(event, OrderStatusUpdateEvent):
            self._logger.debug("Order %s pushed to %s", event.order_id, event.new_status)
            self._store.apply_delta(event.order_id, {"delivery_status": event.new_status})
        elif isinstance(event, (NewOrderAssignedEvent, OrderAvailableEvent)):
            self._logger.debug("Realtime %s; refreshing orders", event.type)
            self._schedule_resync()
        elif isinstance(event, UnknownRealtimeEvent):
            self._logger.debug("Ignoring realtime message type=%r malformed=%s", event.type, event.malformed)
            return

        if self._on_event is not None:
            try:
                self._on_event(event)
            except Exception:
                self._logger.debug("on_event callback failed", exc_info=True)

    def _schedule_resync(self) -> None:
        if self._closed:
            return
        task = self._resync_task
        if task is not None and not task.done():
            # Coalesce: one more fetch after the running one.
            self._resync_again = True
            return
        self._resync_task = asyncio.get_running_loop().create_task(self._resync_loop(), name="pyfoodime-resync")

    async def _resync_loop(self) -> None:
        while True:
            self._resync_again = False
            try:
                await self._resync()
            except FoodimeAuthError:
                self._logger.info("Order refresh stopped: session is no longer valid")
                return
            except FoodimeError as exc:
                self._logger.warning("Order refresh after realtime event failed: %s", exc)
            if self._closed or not self._resync_again:
                return

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _set_state(self, state: ChannelState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception:
                self._logger.debug("on_state_change callback failed", exc_info=True)

    def _set_degraded(self, degraded: bool) -> None:
        if degraded is self._degraded:
            return
        self._degraded = degraded
        if degraded:
            self._logger.warning(
                "Realtime updates unavailable after %d attempts; relying on order polling",
                self._backoff.attempts,
            )
        else:
            self._logger.info("Realtime updates restored")
        if self._on_degraded is not None:
            try:
                self._on_degraded(degraded)
            except Exception:
                self._logger.debug("on_degraded callback failed", exc_info=True)

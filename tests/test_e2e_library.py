from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiohttp
import pytest

from pyfoodime._client.location import StaticPositionProvider
from pyfoodime._transport import TransportResponse
from pyfoodime.client import FoodimeClient
from pyfoodime.config import FoodimeConfig
from pyfoodime.exceptions import FoodimeAuthError
from pyfoodime.models.location import PermissionState
from pyfoodime.models.order import DeliveryStatus

pytestmark = pytest.mark.e2e


@dataclass
class FakeFoodimeBackend:
    token: str = "nonce-1"
    password: str = "secret"
    orders: list[dict[str, Any]] = field(
        default_factory=lambda: [
            {"id": 1, "order_number": "1001", "delivery_status": "assigned", "customer_name": "Ada"},
            {"id": 2, "order_number": "1002", "delivery_status": "picked-up", "customer_name": "Grace"},
        ]
    )
    calls: dict[str, int] = field(default_factory=dict)
    status_posts: list[tuple[int, str]] = field(default_factory=list)
    locations: list[dict[str, Any]] = field(default_factory=list)

    def expire_token(self) -> None:
        self.token = "rotated"

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        payload: Any = None,
    ) -> TransportResponse:
        self.calls[endpoint] = self.calls.get(endpoint, 0) + 1

        if endpoint == "/delivery-login":
            if payload["password"] != self.password:
                return TransportResponse(401, {"status": "error", "message": "Invalid username or password."})
            return TransportResponse(
                200,
                {
                    "status": "success",
                    "token": self.token,
                    "user_id": 5,
                    "username": payload["username"],
                    "full_name": "Rider Five",
                    "redirect_to": "/delivery-dashboard",
                },
            )

        if token != self.token:
            return TransportResponse(403, {"code": "rest_forbidden", "message": "Sorry, you are not allowed to do that."})

        if endpoint == "/delivery-orders":
            return TransportResponse(200, {"success": True, "data": [dict(order) for order in self.orders]})

        if endpoint == "/delivery-order-status":
            self.status_posts.append((payload["order_id"], payload["status"]))
            for order in self.orders:
                if order["id"] == payload["order_id"]:
                    order["delivery_status"] = payload["status"]
            return TransportResponse(200, {"success": True, "message": "Order status updated successfully"})

        if endpoint == "/delivery-location":
            self.locations.append(dict(payload))
            return TransportResponse(200, {"success": True})

        raise AssertionError(f"Unexpected endpoint in fake backend: {endpoint}")


@dataclass
class FakeMessage:
    type: aiohttp.WSMsgType
    data: Any = None


class FakeSocket:
    def __init__(self, messages: list[dict[str, Any]]) -> None:
        self._messages = messages
        self._hold = asyncio.Event()

    async def __aenter__(self) -> FakeSocket:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None

    def __aiter__(self) -> Any:
        return self._iterate()

    async def _iterate(self) -> Any:
        for message in self._messages:
            yield FakeMessage(aiohttp.WSMsgType.TEXT, json.dumps(message))
        await self._hold.wait()

    def exception(self) -> None:
        return None


class FakeWsSession:
    """Stands in for aiohttp.ClientSession; only websockets are exercised."""

    def __init__(self, sockets: list[FakeSocket] | None = None) -> None:
        self._sockets = list(sockets or [])
        self.attempts = 0

    def ws_connect(self, url: str) -> FakeSocket:
        self.attempts += 1
        if not self._sockets:
            raise aiohttp.ClientConnectionError(f"cannot connect to {url}")
        return self._sockets.pop(0)


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeFoodimeBackend:
    fake_backend = FakeFoodimeBackend()

    async def fake_request(_self: Any, method: str, endpoint: str, **kwargs: Any) -> TransportResponse:
        return await fake_backend.request(method, endpoint, **kwargs)

    monkeypatch.setattr("pyfoodime._transport.HttpTransport.request", fake_request)
    return fake_backend


def _config(tmp_path: Path, **overrides: Any) -> FoodimeConfig:
    values: dict[str, Any] = {
        "base_url": "https://shop.example/wp-json/foodime/v1",
        "username": "rider",
        "password": "secret",
        "session_file": tmp_path / "session.json",
        "realtime_enabled": False,
        "location_enabled": False,
    }
    values.update(overrides)
    return FoodimeConfig(**values)


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_login_load_advance_logout(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    logouts: list[str] = []
    config = _config(tmp_path)

    async with FoodimeClient(config, session=FakeWsSession(), on_logout=logouts.append) as client:  # type: ignore[arg-type]
        session = await client.login()
        assert session.display_name == "Rider Five"
        assert (tmp_path / "session.json").exists()

        orders = await client.start()
        assert [order.id for order in orders] == [1, 2]

        order = await client.advance(1)
        assert order.delivery_status == DeliveryStatus.PICKED_UP
        assert backend.status_posts == [(1, "picked-up")]
        assert [o.id for o in client.store.partition()["active"]] == [1, 2]

        client.logout()

        assert logouts == ["logout"]
        assert len(client.store) == 0
        assert client.session is None
        assert not (tmp_path / "session.json").exists()


@pytest.mark.asyncio
async def test_wrong_password(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    async with FoodimeClient(_config(tmp_path), session=FakeWsSession()) as client:  # type: ignore[arg-type]
        with pytest.raises(FoodimeAuthError, match="Invalid username or password"):
            await client.login(password="wrong")
        assert client.session is None
        with pytest.raises(FoodimeAuthError):
            await client.start()


@pytest.mark.asyncio
async def test_session_is_restored_across_clients(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    config = _config(tmp_path)
    async with FoodimeClient(config, session=FakeWsSession()) as client:  # type: ignore[arg-type]
        await client.login()

    async with FoodimeClient(config, session=FakeWsSession()) as client:  # type: ignore[arg-type]
        assert client.restore_session() is True
        orders = await client.start()
        assert len(orders) == 2
    assert backend.calls["/delivery-login"] == 1


@pytest.mark.asyncio
async def test_forbidden_status_update_logs_out(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    logouts: list[str] = []
    async with FoodimeClient(_config(tmp_path), session=FakeWsSession(), on_logout=logouts.append) as client:  # type: ignore[arg-type]
        await client.login()
        await client.start()
        backend.expire_token()

        with pytest.raises(FoodimeAuthError):
            await client.request_transition(2, "on-the-way")

        assert logouts == ["authorization failure"]
        assert client.session is None
        assert len(client.store) == 0
        assert not (tmp_path / "session.json").exists()


@pytest.mark.asyncio
async def test_realtime_updates_and_resync(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    socket = FakeSocket(
        [
            {"type": "order_status_update", "order_id": 2, "new_status": "on-the-way"},
            {"type": "new_order_assigned"},
        ]
    )
    config = _config(tmp_path, realtime_enabled=True)

    async with FoodimeClient(config, session=FakeWsSession([socket])) as client:  # type: ignore[arg-type]
        await client.login()
        await client.start()
        backend.orders[1]["delivery_status"] = "on-the-way"
        backend.orders.append({"id": 3, "delivery_status": "assigned", "customer_name": "Linus"})

        await _wait_for(lambda: 3 in client.store)

        assert client.store.get(2).delivery_status == DeliveryStatus.ON_THE_WAY
        assert client.store.get(1).delivery_status == DeliveryStatus.ASSIGNED
        assert client.channel_state == "connected"

        client.logout()
        assert client.channel_state == "disconnected"


@pytest.mark.asyncio
async def test_degraded_channel_falls_back_to_polling(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    degraded: list[bool] = []
    config = _config(
        tmp_path,
        realtime_enabled=True,
        backoff_initial=0.01,
        backoff_max=0.02,
        backoff_jitter=0.0,
        degraded_after_failures=2,
        fallback_poll_interval=0.01,
    )

    async with FoodimeClient(
        config, session=FakeWsSession(), on_connectivity_degraded=degraded.append  # type: ignore[arg-type]
    ) as client:
        await client.login()
        await client.start()

        await _wait_for(lambda: backend.calls.get("/delivery-orders", 0) >= 4)
        assert client.connectivity_degraded
        assert degraded[0] is True

        client.logout()
        polled = backend.calls["/delivery-orders"]
        await asyncio.sleep(0.05)
        assert backend.calls["/delivery-orders"] == polled


@pytest.mark.asyncio
async def test_location_reports_follow_selection_and_stop_on_logout(
    backend: FakeFoodimeBackend, tmp_path: Path
) -> None:
    config = _config(tmp_path, location_enabled=True, location_interval=0.01)
    provider = StaticPositionProvider(40.4168, -3.7038)

    async with FoodimeClient(config, session=FakeWsSession(), position_provider=provider) as client:  # type: ignore[arg-type]
        await client.login()
        await client.start()
        assert client.location_permission == "granted"

        client.select_order(1)
        sent = len(backend.locations)
        await _wait_for(lambda: len(backend.locations) >= sent + 2)
        assert backend.locations[-1] == {"latitude": 40.4168, "longitude": -3.7038, "order_id": 1}

        client.logout()
        sent = len(backend.locations)
        await asyncio.sleep(0.05)
        assert len(backend.locations) == sent


@pytest.mark.asyncio
async def test_orders_load_before_the_permission_prompt(backend: FakeFoodimeBackend, tmp_path: Path) -> None:
    config = _config(tmp_path, location_enabled=True, location_interval=0.01)
    seen_at_prompt: list[int] = []

    class PromptingProvider(StaticPositionProvider):
        async def query_permission(self) -> PermissionState:
            seen_at_prompt.append(backend.calls.get("/delivery-orders", 0))
            return PermissionState.GRANTED

    provider = PromptingProvider(40.4168, -3.7038)
    async with FoodimeClient(config, session=FakeWsSession(), position_provider=provider) as client:  # type: ignore[arg-type]
        await client.login()
        orders = await client.start()

        assert [order.id for order in orders] == [1, 2]
        assert seen_at_prompt == [1]
        assert client.location_permission == "granted"
        client.logout()

"""Tests for Pydantic model parsing with FoodimeBaseModel + FoodimeEnum."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pyfoodime.models.location import LocationSample, Position
from pyfoodime.models.order import STATUS_SEQUENCE, CustomerAddress, DeliveryStatus, Order, Restaurant
from pyfoodime.models.realtime import (
    NewOrderAssignedEvent,
    OrderAvailableEvent,
    OrderStatusUpdateEvent,
    UnknownRealtimeEvent,
    parse_realtime_event,
)
from pyfoodime.models.token import LoginResponse

# ------------------------------------------------------------------
# DeliveryStatus
# ------------------------------------------------------------------


class TestDeliveryStatus:
    def test_unknown_value_falls_back(self) -> None:
        assert DeliveryStatus("cancelled") == DeliveryStatus.UNKNOWN

    def test_known_value(self) -> None:
        assert DeliveryStatus("on-the-way") == DeliveryStatus.ON_THE_WAY

    def test_underscore_and_case_are_normalised(self) -> None:
        assert DeliveryStatus("Picked_Up") == DeliveryStatus.PICKED_UP

    def test_successor_chain(self) -> None:
        assert [status.successor() for status in STATUS_SEQUENCE] == [
            DeliveryStatus.PICKED_UP,
            DeliveryStatus.ON_THE_WAY,
            DeliveryStatus.DELIVERED,
            None,
        ]
        assert DeliveryStatus.UNKNOWN.successor() is None

    def test_rank(self) -> None:
        assert DeliveryStatus.ASSIGNED.rank() == 0
        assert DeliveryStatus.DELIVERED.rank() == 3
        assert DeliveryStatus.UNKNOWN.rank() == -1

    def test_label(self) -> None:
        assert DeliveryStatus.ON_THE_WAY.label == "on the way"


# ------------------------------------------------------------------
# Order
# ------------------------------------------------------------------


class TestOrder:
    SAMPLE_PAYLOAD: dict = {
        "id": 101,
        "order_number": 5001,
        "delivery_status": "picked-up",
        "customer_name": "Ada Lovelace",
        "customer_phone": "+44 20 7946 0000",
        "customer_address": {
            "address_1": "12 Analytical Row",
            "address_2": "",
            "city": "London",
            "state": "LDN",
            "postcode": 10001,
            "latitude": 51.5072,
            "longitude": -0.1276,
        },
        "customer_notes": "--",
        "restaurant": {"name": "Babbage Burgers", "address": "1 Engine St", "latitude": 51.5, "longitude": -0.12},
        "order_items": [{"name": "Burger", "quantity": 2, "total": 19.0}],
        "total": "24.50",
        "payment_method": "cod",
    }

    def test_full_parse(self) -> None:
        order = Order.model_validate(self.SAMPLE_PAYLOAD)
        assert order.id == 101
        assert order.order_number == "5001"
        assert order.delivery_status == DeliveryStatus.PICKED_UP
        assert order.customer_address.postcode == "10001"
        assert order.customer_address.address_2 is None
        assert order.customer_notes is None
        assert order.total == pytest.approx(24.5)
        assert order.order_items[0].quantity == 2
        assert order.revision == 0

    def test_raw_preserved_but_not_dumped(self) -> None:
        order = Order.model_validate(self.SAMPLE_PAYLOAD)
        assert order.raw["order_number"] == 5001
        assert "raw" not in order.model_dump()

    def test_unknown_status_kept_as_unknown(self) -> None:
        order = Order.model_validate({"id": 1, "delivery_status": "lost-in-space"})
        assert order.delivery_status == DeliveryStatus.UNKNOWN

    def test_missing_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Order.model_validate({"delivery_status": "assigned"})

    def test_same_content_ignores_revision(self) -> None:
        order = Order.model_validate(self.SAMPLE_PAYLOAD)
        assert order.same_content(order.model_copy(update={"revision": 7}))
        assert not order.same_content(order.model_copy(update={"delivery_status": DeliveryStatus.ON_THE_WAY}))

    def test_map_urls(self) -> None:
        order = Order.model_validate(self.SAMPLE_PAYLOAD)
        assert order.customer_map_url() == "https://www.google.com/maps/dir/?api=1&destination=51.5072,-0.1276"
        assert order.restaurant.map_url() is not None
        assert Restaurant(name="No coords").map_url() is None

    def test_address_one_line(self) -> None:
        address = CustomerAddress(address_1="1 Main St", city="Springfield", state="IL", postcode="62701")
        assert address.one_line() == "1 Main St, Springfield, IL - 62701"


# ------------------------------------------------------------------
# Realtime events
# ------------------------------------------------------------------


class TestRealtimeEvents:
    def test_status_update(self) -> None:
        event = parse_realtime_event({"type": "order_status_update", "order_id": 2, "new_status": "on-the-way"})
        assert isinstance(event, OrderStatusUpdateEvent)
        assert event.order_id == 2
        assert event.new_status == DeliveryStatus.ON_THE_WAY

    def test_assignment_and_availability(self) -> None:
        assert isinstance(parse_realtime_event({"type": "new_order_assigned"}), NewOrderAssignedEvent)
        assert isinstance(parse_realtime_event({"type": "order_available"}), OrderAvailableEvent)

    def test_unknown_type_is_not_malformed(self) -> None:
        event = parse_realtime_event({"type": "ping"})
        assert isinstance(event, UnknownRealtimeEvent)
        assert event.type == "ping"
        assert event.malformed is False

    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "a", "dict"],
            {"type": "order_status_update", "new_status": "on-the-way"},
            {"type": "order_status_update", "order_id": "abc", "new_status": "on-the-way"},
            {"type": "order_status_update", "order_id": 2, "new_status": "teleported"},
        ],
    )
    def test_malformed_messages(self, payload: object) -> None:
        event = parse_realtime_event(payload)
        assert isinstance(event, UnknownRealtimeEvent)
        assert event.malformed is True


# ------------------------------------------------------------------
# Login and location
# ------------------------------------------------------------------


class TestLoginResponse:
    def test_success(self) -> None:
        response = LoginResponse.model_validate(
            {"status": "success", "token": "nonce-1", "user_id": 7, "username": "rider", "full_name": "Rider One"}
        )
        assert response.ok

    def test_success_without_token_is_not_ok(self) -> None:
        assert not LoginResponse.model_validate({"status": "success", "token": ""}).ok

    def test_error(self) -> None:
        response = LoginResponse.model_validate({"status": "error", "message": "Account not approved"})
        assert not response.ok
        assert response.message == "Account not approved"


class TestLocationSample:
    def test_request_body(self) -> None:
        sample = LocationSample.from_position(Position(latitude=12.5, longitude=-3.25), order_id=42)
        assert sample.to_request_body() == {"latitude": 12.5, "longitude": -3.25, "order_id": 42}
        assert sample.captured_at.tzinfo is not None

    def test_naive_timestamp_is_utc(self) -> None:
        sample = LocationSample(latitude=0.0, longitude=0.0, captured_at=datetime(2026, 1, 1))
        assert sample.captured_at.tzinfo == UTC

    def test_position_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Position(latitude=91.0, longitude=0.0)

"""Delivery order models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from pyfoodime.models._base import FoodimeBaseModel, FoodimeEnum

_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"


class DeliveryStatus(FoodimeEnum):
    """Delivery stage of an order.

    Partner-initiated changes only ever move one step along
    ``assigned → picked-up → on-the-way → delivered``.
    """

    UNKNOWN = "unknown"
    ASSIGNED = "assigned"
    PICKED_UP = "picked-up"
    ON_THE_WAY = "on-the-way"
    DELIVERED = "delivered"

    def rank(self) -> int:
        """Position in the delivery sequence (``-1`` for ``UNKNOWN``)."""
        try:
            return STATUS_SEQUENCE.index(self)
        except ValueError:
            return -1

    def successor(self) -> DeliveryStatus | None:
        """The single legal next stage, or ``None`` when there is none."""
        rank = self.rank()
        if rank < 0 or rank + 1 >= len(STATUS_SEQUENCE):
            return None
        return STATUS_SEQUENCE[rank + 1]

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


STATUS_SEQUENCE: tuple[DeliveryStatus, ...] = (
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.ON_THE_WAY,
    DeliveryStatus.DELIVERED,
)

#: Panel sections, keyed by name, in display order.
ORDER_SECTIONS: dict[str, frozenset[DeliveryStatus]] = {
    "new": frozenset({DeliveryStatus.ASSIGNED}),
    "active": frozenset({DeliveryStatus.PICKED_UP, DeliveryStatus.ON_THE_WAY}),
    "completed": frozenset({DeliveryStatus.DELIVERED}),
}


def _map_url(latitude: float | None, longitude: float | None) -> str | None:
    # Zero coordinates are treated as missing, like the panel does.
    if not latitude or not longitude:
        return None
    return _MAPS_DIRECTIONS_URL.format(lat=latitude, lon=longitude)


class CustomerAddress(FoodimeBaseModel):
    address_1: str = ""
    address_2: str | None = None
    city: str = ""
    state: str = ""
    postcode: str = ""
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("postcode", mode="before")
    @classmethod
    def _coerce_postcode(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    def one_line(self) -> str:
        parts = [self.address_1, self.address_2 or "", self.city]
        text = ", ".join(part for part in parts if part)
        if self.state or self.postcode:
            text = f"{text}, {self.state} - {self.postcode}".strip()
        return text


class Restaurant(FoodimeBaseModel):
    name: str = ""
    address: str = ""
    latitude: float | None = None
    longitude: float | None = None

    def map_url(self) -> str | None:
        """Directions link to the restaurant, when coordinates are known."""
        return _map_url(self.latitude, self.longitude)


class OrderItem(FoodimeBaseModel):
    name: str
    quantity: int = 1
    total: float = 0.0


class Order(FoodimeBaseModel):
    """A delivery order as listed by ``/delivery-orders``.

    ``revision`` is local bookkeeping, never sent by the server: the
    order store bumps it on every accepted local mutation.
    """

    id: int
    order_number: str = ""
    delivery_status: DeliveryStatus = DeliveryStatus.UNKNOWN
    customer_name: str = ""
    customer_phone: str = ""
    customer_address: CustomerAddress = Field(default_factory=CustomerAddress)
    customer_notes: str | None = None
    restaurant: Restaurant = Field(default_factory=Restaurant)
    order_items: list[OrderItem] = Field(default_factory=list)
    total: float = 0.0
    payment_method: str = ""
    revision: int = 0

    @field_validator("order_number", "customer_phone", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    def customer_map_url(self) -> str | None:
        """Directions link to the customer, when coordinates are known."""
        return _map_url(self.customer_address.latitude, self.customer_address.longitude)

    def same_content(self, other: Order) -> bool:
        """Compare server-visible fields, ignoring ``raw`` and ``revision``."""
        return self.model_dump(exclude={"revision"}) == other.model_dump(exclude={"revision"})

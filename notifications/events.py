"""
Purpose: The notification event types, one variant per event.
What it does:
- EventType tags the variant on the wire
- OrderParties carries the ids every order-scoped event needs to find its recipients
- Each variant is a frozen dataclass with exactly the fields that event uses

Rule: Events are ephemeral. They are built after a state change commits,
routed once, and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Union

from orders.models import Order, OrderStatus


class EventType(str, Enum):
    ORDER_STATUS_UPDATE = "order-status-update"
    NEW_ORDER = "new-order"
    DELIVERY_ASSIGNED = "delivery-assigned"
    ORDER_CANCELLED = "order-cancelled"
    DRIVER_LOCATION_UPDATED = "driver-location-updated"


class Role(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"
    DRIVER = "driver"
    # The restaurant's shared management channel (staff screens), not a person.
    MANAGEMENT = "management"


def user_channel(user_id: str) -> str:
    return f"user-{user_id}"


def restaurant_channel(restaurant_id: str) -> str:
    return f"restaurant-{restaurant_id}"


@dataclass(frozen=True)
class Recipient:
    role: Role
    channel: str


@dataclass(frozen=True)
class OrderParties:
    order_id: str
    order_number: str
    customer_id: Optional[str]
    restaurant_id: str
    restaurant_owner_id: Optional[str]
    driver_id: Optional[str] = None

    @classmethod
    def from_order(cls, order: Order, restaurant_owner_id: Optional[str]) -> OrderParties:
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
            restaurant_owner_id=restaurant_owner_id,
            driver_id=order.delivery_driver_id,
        )


@dataclass(frozen=True)
class OrderStatusUpdate:
    event_type: ClassVar[EventType] = EventType.ORDER_STATUS_UPDATE
    parties: OrderParties
    status: OrderStatus
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class NewOrder:
    event_type: ClassVar[EventType] = EventType.NEW_ORDER
    parties: OrderParties
    total: Decimal
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class DeliveryAssigned:
    event_type: ClassVar[EventType] = EventType.DELIVERY_ASSIGNED
    parties: OrderParties
    driver_id: str
    delivery_id: str
    estimated_delivery_time: Optional[datetime] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class OrderCancelled:
    event_type: ClassVar[EventType] = EventType.ORDER_CANCELLED
    parties: OrderParties
    reason: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class DriverLocationUpdated:
    event_type: ClassVar[EventType] = EventType.DRIVER_LOCATION_UPDATED
    parties: OrderParties
    driver_id: str
    lat: float
    lon: float
    timestamp: datetime = field(default_factory=datetime.utcnow)


NotificationEvent = Union[OrderStatusUpdate, NewOrder, DeliveryAssigned, OrderCancelled, DriverLocationUpdated]

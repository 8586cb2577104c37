"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, customer/restaurant refs, items, totals, status, driver ref, timestamps)
- Delivery (the record binding one Order to one Driver)
- OrderItem / ItemOption (priced line items with variants and addons)
- OrderTotals (derived money values, frozen after checkout)

Defines enums/constants:
- OrderStatus = pending | confirmed | preparing | ready | out_for_delivery | delivered | cancelled
- PaymentStatus = pending | paid | failed | refunded
- DeliveryStatus = assigned | picked_up | in_transit | delivered | failed

Rule: No locking, no catalog lookups, no notification logic. Models only.
Orders and Deliveries are replaced (dataclasses.replace), never mutated in place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
import uuid

LatLon = Tuple[float, float]


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class DeliveryStatus(str, Enum):
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
TERMINAL_DELIVERY_STATUSES = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED})


@dataclass(frozen=True)
class ItemOption:
    """A chosen variant or addon with its surcharge."""
    name: str
    price: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class OrderItem:
    """
    One priced line of an order. unit_price always comes from the catalog,
    never from the customer's request.
    """
    menu_item_id: str
    quantity: int
    unit_price: Decimal
    variants: Tuple[ItemOption, ...] = ()
    addons: Tuple[ItemOption, ...] = ()
    special_instructions: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        options = sum((option.price for option in self.variants + self.addons), Decimal("0.00"))
        return (self.unit_price + options) * self.quantity


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal


@dataclass(frozen=True)
class Order:
    """
    A single customer purchase.

    delivery_driver_id is written exactly once, by the exclusive assignment
    commit in the dispatch store. totals never change after checkout.
    """

    id: str
    order_number: str
    customer_id: str
    restaurant_id: str
    items: Tuple[OrderItem, ...]
    totals: OrderTotals

    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_driver_id: Optional[str] = None

    delivery_location: Optional[LatLon] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def total(self) -> Decimal:
        return self.totals.total

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def __repr__(self) -> str:
        return f"Order({self.order_number}, {self.status.value}, driver={self.delivery_driver_id})"


@dataclass(frozen=True)
class Delivery:
    """
    The assignment record binding one Order to one Driver.
    Created atomically with the Order -> Driver commit; never deleted.
    """

    id: str
    order_id: str
    driver_id: str
    delivery_fee: Decimal
    driver_earnings: Decimal
    platform_share: Decimal

    status: DeliveryStatus = DeliveryStatus.ASSIGNED
    estimated_delivery_time: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    delivery_time: Optional[datetime] = None
    distance_km: float = 0.0

    customer_rating: Optional[int] = None
    customer_feedback: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_DELIVERY_STATUSES

    @staticmethod  # Factory used by the assignment commit
    def new(
        order: Order,
        driver_id: str,
        driver_earnings: Decimal,
        platform_share: Decimal,
        distance_km: float = 0.0,
    ) -> Delivery:
        return Delivery(
            id=str(uuid.uuid4()),
            order_id=order.id,
            driver_id=driver_id,
            delivery_fee=order.totals.delivery_fee,
            driver_earnings=driver_earnings,
            platform_share=platform_share,
            estimated_delivery_time=order.estimated_delivery_time,
            distance_km=distance_km,
        )

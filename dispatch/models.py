"""
Result and actor types shared by the dispatch components.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from orders.models import Delivery, Order


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"
    DRIVER = "driver"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole


@dataclass(frozen=True)
class Assignment:
    order_id: str
    driver_id: str
    delivery_id: str


@dataclass(frozen=True)
class Unassigned:
    """
    Not an error: the order stays driver-less and will be retried by the
    next sweep. The customer sees "searching for a driver".
    """
    order_id: str
    reason: str


AssignmentOutcome = Union[Assignment, Unassigned]


@dataclass(frozen=True)
class TrackingResult:
    order: Order
    delivery: Delivery
    order_changed: bool
    delivery_changed: bool

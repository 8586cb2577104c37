from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from orders.models import DeliveryStatus, Order, OrderStatus, TERMINAL_ORDER_STATUSES

from ..errors import InvalidTransition

# Happy path, in order. A legal forward move is exactly one step along it.
HAPPY_PATH = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

RANK: Dict[OrderStatus, int] = {status: index for index, status in enumerate(HAPPY_PATH)}

# Delivery drives Order, never the reverse.
ORDER_STATUS_FOR_DELIVERY: Dict[DeliveryStatus, OrderStatus] = {
    DeliveryStatus.PICKED_UP: OrderStatus.READY,
    DeliveryStatus.IN_TRANSIT: OrderStatus.OUT_FOR_DELIVERY,
    DeliveryStatus.DELIVERED: OrderStatus.DELIVERED,
    DeliveryStatus.FAILED: OrderStatus.CANCELLED,
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current in TERMINAL_ORDER_STATUSES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return RANK[target] == RANK[current] + 1


def rejection_reason(current: OrderStatus, target: OrderStatus) -> Optional[str]:
    """None when the move is legal, otherwise the text shown to the caller."""
    if can_transition(current, target):
        return None
    if current in TERMINAL_ORDER_STATUSES:
        verb = "cancel" if target == OrderStatus.CANCELLED else f"move to {target.value}"
        return f"cannot {verb} a {current.value} order"
    if current == target:
        return f"order is already {current.value}"
    if RANK[target] < RANK[current]:
        return f"cannot move an order back from {current.value} to {target.value}"
    return f"cannot skip from {current.value} to {target.value}"


def check_transition(order: Order, target: OrderStatus) -> None:
    reason = rejection_reason(order.status, target)
    if reason is not None:
        raise InvalidTransition(order.id, order.status.value, target.value, reason)


def apply_transition(
    order: Order,
    target: OrderStatus,
    at: Optional[datetime] = None,
    cancellation_reason: Optional[str] = None,
) -> Order:
    """
    Validate and return the advanced Order. The input Order is left untouched,
    so a rejected move has nothing to roll back.
    """
    check_transition(order, target)
    at = at or datetime.utcnow()

    changes = {"status": target}
    if target == OrderStatus.DELIVERED:
        changes["actual_delivery_time"] = at
    if target == OrderStatus.CANCELLED:
        changes["cancellation_reason"] = cancellation_reason
    return replace(order, **changes)


class OrderStateMachine:
    """Transition rules for a single order. Pure logic, no I/O."""

    can_transition = staticmethod(can_transition)
    check = staticmethod(check_transition)
    apply = staticmethod(apply_transition)

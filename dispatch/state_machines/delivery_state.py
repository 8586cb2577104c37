from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from orders.models import Delivery, DeliveryStatus, TERMINAL_DELIVERY_STATUSES

from ..errors import InvalidTransition

DELIVERY_PATH = (
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
)

RANK: Dict[DeliveryStatus, int] = {status: index for index, status in enumerate(DELIVERY_PATH)}


def can_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    if current in TERMINAL_DELIVERY_STATUSES:
        return False
    if target == DeliveryStatus.FAILED:
        return True
    return RANK[target] == RANK[current] + 1


def check_transition(delivery: Delivery, target: DeliveryStatus) -> None:
    if can_transition(delivery.status, target):
        return

    current = delivery.status
    if current in TERMINAL_DELIVERY_STATUSES:
        reason = f"delivery is already {current.value}"
    elif target == DeliveryStatus.ASSIGNED or RANK[target] <= RANK[current]:
        reason = f"cannot move a delivery back from {current.value} to {target.value}"
    else:
        reason = f"cannot skip from {current.value} to {target.value}"
    raise InvalidTransition(delivery.id, current.value, target.value, reason)


def apply_transition(delivery: Delivery, target: DeliveryStatus, at: Optional[datetime] = None) -> Delivery:
    """
    Stamps pickup_time on picked_up and delivery_time on delivered.
    failed carries no timestamp requirement.
    """
    check_transition(delivery, target)
    at = at or datetime.utcnow()

    changes = {"status": target}
    if target == DeliveryStatus.PICKED_UP:
        changes["pickup_time"] = at
    elif target == DeliveryStatus.DELIVERED:
        changes["delivery_time"] = at
    return replace(delivery, **changes)

"""
Error taxonomy for the dispatcher.

- InvalidTransition / Unauthorized abort the operation with nothing written.
- AssignmentConflict never leaves the assignment engine's retry loop.
- TransportUnavailable never leaves the notification router.
- "Unassigned" is deliberately not here: it is a result, see dispatch.models.
"""

from __future__ import annotations

from typing import Optional

from notifications.transports import TransportUnavailable
from orders.checkout import OrderValidationError


class DispatchError(Exception):
    """Base class for every error the dispatcher raises on purpose."""
    pass


class InvalidTransition(DispatchError):
    """Raised when a status change violates the order or delivery state machine."""

    def __init__(self, entity_id: str, current: str, target: str, reason: str):
        self.entity_id = entity_id
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(reason)


class Unauthorized(DispatchError):
    """Raised when an actor tries to change something they do not own."""
    pass


class AssignmentConflict(DispatchError):
    """The exclusive commit lost a race. Internal to the assignment engine."""

    ORDER_ALREADY_ASSIGNED = "order already assigned"
    ORDER_NOT_ASSIGNABLE = "order is no longer assignable"
    DRIVER_BUSY = "driver has an active delivery"

    def __init__(self, order_id: str, driver_id: str, reason: str):
        self.order_id = order_id
        self.driver_id = driver_id
        self.reason = reason
        super().__init__(f"Cannot assign order {order_id} to driver {driver_id}: {reason}")

    @property
    def order_taken(self) -> bool:
        return self.reason in (self.ORDER_ALREADY_ASSIGNED, self.ORDER_NOT_ASSIGNABLE)


class OrderNotFound(DispatchError, KeyError):
    pass


class DeliveryNotFound(DispatchError, KeyError):
    pass


class DriverUnavailable(DispatchError):
    """Raised when an offline driver tries to claim an order."""
    pass


class RatingRejected(DispatchError):
    pass


class LockTimeout(DispatchError):
    """A per-key lock could not be acquired within its timeout."""

    def __init__(self, key: str, timeout: Optional[float]):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for lock {key}")


class StoreTimeout(LockTimeout):
    pass


__all__ = [
    "DispatchError",
    "InvalidTransition",
    "Unauthorized",
    "AssignmentConflict",
    "TransportUnavailable",
    "OrderNotFound",
    "DeliveryNotFound",
    "OrderValidationError",
    "DriverUnavailable",
    "RatingRejected",
    "LockTimeout",
    "StoreTimeout",
]

"""
Purpose: Record store for Orders and Deliveries, and the exclusive commit.
What it does:
- Owns every Order and Delivery record, keyed by id
- Keeps the 1:1 Delivery.order index and the "active delivery per driver" index
- Exposes transaction() so a read-check-write sequence runs atomically
- commit_assignment(): the single serialization point for Order <-> Driver binding

Rule: The store checks invariants that span records (exclusivity, uniqueness).
Status rules live in the state machines; callers validate before saving.
Records are immutable, so a transaction that raises half way has written nothing
it did not explicitly save.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from threading import RLock
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from orders.models import Delivery, Order

from .errors import AssignmentConflict, DeliveryNotFound, OrderNotFound, StoreTimeout


class DispatchStore:
    def __init__(self, lock_timeout_seconds: float = 2.0):
        self.lock_timeout_seconds = lock_timeout_seconds

        #storage for records
        self._orders: Dict[str, Order] = {}
        self._deliveries: Dict[str, Delivery] = {}

        #indexes derived from the records
        self._delivery_by_order: Dict[str, str] = {}  # order id -> delivery id (unique)
        self._active_delivery_by_driver: Dict[str, str] = {}  # driver id -> non-terminal delivery id

        self._lock = RLock()

    @contextmanager
    def transaction(self) -> Iterator[DispatchStore]:
        if not self._lock.acquire(timeout=self.lock_timeout_seconds):
            raise StoreTimeout("dispatch-store", self.lock_timeout_seconds)
        try:
            yield self
        finally:
            self._lock.release()

    # --- Orders ---

    def add_order(self, order: Order) -> Order:
        with self.transaction():
            existing = self._orders.get(order.id)
            if existing is not None:
                #idempotency : dont double insert
                return existing
            self._orders[order.id] = order
            return order

    def get_order(self, order_id: str) -> Optional[Order]:
        with self.transaction():
            return self._orders.get(order_id)

    def require_order(self, order_id: str) -> Order:
        order = self.get_order(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    def save_order(self, order: Order) -> Order:
        with self.transaction():
            if order.id not in self._orders:
                raise OrderNotFound(f"Order {order.id} not found")
            current = self._orders[order.id]
            if current.delivery_driver_id is not None and order.delivery_driver_id != current.delivery_driver_id:
                raise ValueError(f"Order {order.id} driver can only be set by the assignment commit")
            self._orders[order.id] = order
            return order

    def orders(self) -> List[Order]:
        with self.transaction():
            return list(self._orders.values())

    def unassigned_orders(self) -> List[Order]:
        """Driver-less, non-terminal orders, oldest first."""
        with self.transaction():
            pending = [
                order for order in self._orders.values()
                if order.delivery_driver_id is None and not order.is_terminal
            ]
        pending.sort(key=lambda order: (order.created_at, order.id))
        return pending

    # --- Deliveries ---

    def get_delivery(self, delivery_id: str) -> Optional[Delivery]:
        with self.transaction():
            return self._deliveries.get(delivery_id)

    def require_delivery(self, delivery_id: str) -> Delivery:
        delivery = self.get_delivery(delivery_id)
        if delivery is None:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found")
        return delivery

    def delivery_for_order(self, order_id: str) -> Optional[Delivery]:
        with self.transaction():
            delivery_id = self._delivery_by_order.get(order_id)
            return self._deliveries.get(delivery_id) if delivery_id else None

    def active_delivery_for_driver(self, driver_id: str) -> Optional[Delivery]:
        with self.transaction():
            delivery_id = self._active_delivery_by_driver.get(driver_id)
            return self._deliveries.get(delivery_id) if delivery_id else None

    def has_active_delivery(self, driver_id: str) -> bool:
        return self.active_delivery_for_driver(driver_id) is not None

    def deliveries_for_driver(self, driver_id: str) -> List[Delivery]:
        with self.transaction():
            found = [delivery for delivery in self._deliveries.values() if delivery.driver_id == driver_id]
        found.sort(key=lambda delivery: delivery.created_at)
        return found

    def save_delivery(self, delivery: Delivery) -> Delivery:
        with self.transaction():
            current = self._deliveries.get(delivery.id)
            if current is None:
                raise DeliveryNotFound(f"Delivery {delivery.id} not found")
            if delivery.driver_id != current.driver_id or delivery.order_id != current.order_id:
                raise ValueError(f"Delivery {delivery.id} driver and order are immutable")

            self._deliveries[delivery.id] = delivery
            if not delivery.is_active and self._active_delivery_by_driver.get(delivery.driver_id) == delivery.id:
                del self._active_delivery_by_driver[delivery.driver_id]
            return delivery

    # --- Exclusive commit ---

    def commit_assignment(
        self,
        order_id: str,
        driver_id: str,
        build_delivery: Callable[[Order], Delivery],
    ) -> Tuple[Order, Delivery]:
        """
        Compare-and-swap on "order has no driver" and "driver has no active delivery".
        Either both the order's driver and the new Delivery are written, or nothing is.
        """
        with self.transaction():
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found")

            if order.delivery_driver_id is not None or order_id in self._delivery_by_order:
                raise AssignmentConflict(order_id, driver_id, AssignmentConflict.ORDER_ALREADY_ASSIGNED)

            if order.is_terminal:
                raise AssignmentConflict(order_id, driver_id, AssignmentConflict.ORDER_NOT_ASSIGNABLE)

            if driver_id in self._active_delivery_by_driver:
                raise AssignmentConflict(order_id, driver_id, AssignmentConflict.DRIVER_BUSY)

            assigned_order = replace(order, delivery_driver_id=driver_id)
            delivery = build_delivery(assigned_order)
            if delivery.order_id != order_id or delivery.driver_id != driver_id:
                raise ValueError("build_delivery must bind the committed order and driver")

            self._orders[order_id] = assigned_order
            self._deliveries[delivery.id] = delivery
            self._delivery_by_order[order_id] = delivery.id
            self._active_delivery_by_driver[driver_id] = delivery.id

            return assigned_order, delivery

"""
Purpose: Own the lifecycle of a Delivery and keep its Order in step.
What it does:
- Accepts status reports from the assigned driver only
- Validates the delivery move AND the order move it implies before writing either
- Writes both in one store transaction, or neither
- Announces the order status change after the write has committed

Serialization: every change to one delivery runs under that delivery's lock,
so two reports for the same delivery are applied one after the other.
Different deliveries never wait on each other except for the short store
transaction itself.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Union

from drivers.geo_index import GeoIndex
from notifications.events import OrderCancelled, OrderParties, OrderStatusUpdate
from notifications.router import NotificationRouter
from orders.catalog import CatalogStore
from orders.models import Delivery, DeliveryStatus, Order, OrderStatus, PaymentStatus

from .errors import RatingRejected, Unauthorized
from .locks import LockManager
from .models import TrackingResult
from .state_machines import delivery_state, order_state
from .state_machines.order_state import ORDER_STATUS_FOR_DELIVERY
from .store import DispatchStore

if TYPE_CHECKING:
    from payments.service import PaymentService

logger = logging.getLogger(__name__)

DELIVERY_FAILED_REASON = "delivery failed"


def delivery_lock_key(delivery_id: str) -> str:
    return f"delivery:{delivery_id}"


class DeliveryTracker:
    def __init__(
        self,
        store: DispatchStore,
        catalog: CatalogStore,
        router: Optional[NotificationRouter] = None,
        payments: Optional[PaymentService] = None,
        geo_index: Optional[GeoIndex] = None,
        locks: Optional[LockManager] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.router = router
        self.payments = payments
        self.geo_index = geo_index
        self.locks = locks or LockManager(default_timeout=store.lock_timeout_seconds)

    def advance(
        self,
        delivery_id: str,
        new_status: Union[DeliveryStatus, str],
        actor_id: str,
        at: Optional[datetime] = None,
    ) -> TrackingResult:
        new_status = DeliveryStatus(new_status)

        with self.locks.lock(delivery_lock_key(delivery_id)):
            with self.store.transaction():
                delivery = self.store.require_delivery(delivery_id)
                if actor_id != delivery.driver_id:
                    raise Unauthorized(f"Driver {actor_id} is not assigned to delivery {delivery_id}")

                order = self.store.require_order(delivery.order_id)

                # Same report twice: nothing to stamp, nothing to announce.
                if delivery.status == new_status:
                    return TrackingResult(order, delivery, order_changed=False, delivery_changed=False)

                at = at or datetime.utcnow()
                updated_delivery = delivery_state.apply_transition(delivery, new_status, at)

                target = ORDER_STATUS_FOR_DELIVERY[new_status]
                order_changed = order.status != target
                updated_order = order
                if order_changed:
                    updated_order = order_state.apply_transition(
                        order,
                        target,
                        at,
                        cancellation_reason=DELIVERY_FAILED_REASON if target == OrderStatus.CANCELLED else None,
                    )

                # Both moves validated; only now write.
                self.store.save_delivery(updated_delivery)
                if order_changed:
                    self.store.save_order(updated_order)

        logger.info(
            f"Delivery {delivery_id}: {delivery.status.value} -> {new_status.value}"
            + (f", order {updated_order.order_number} -> {updated_order.status.value}" if order_changed else "")
        )

        if order_changed:
            self._announce(updated_order)
            if updated_order.status == OrderStatus.CANCELLED:
                self._refund_if_paid(updated_order)

        return TrackingResult(updated_order, updated_delivery, order_changed=order_changed, delivery_changed=True)

    def rate(self, delivery_id: str, customer_id: str, rating: int, feedback: Optional[str] = None) -> Delivery:
        """Customer rating of a completed delivery. Feeds the driver's quality score."""
        if rating not in range(1, 6):
            raise RatingRejected("Rating must be between 1 and 5")

        with self.locks.lock(delivery_lock_key(delivery_id)):
            with self.store.transaction():
                delivery = self.store.require_delivery(delivery_id)
                order = self.store.require_order(delivery.order_id)

                if order.customer_id != customer_id:
                    raise Unauthorized(f"Customer {customer_id} did not place order {order.order_number}")
                if delivery.status != DeliveryStatus.DELIVERED:
                    raise RatingRejected("Only delivered orders can be rated")
                if delivery.customer_rating is not None:
                    raise RatingRejected("Delivery has already been rated")

                rated = self.store.save_delivery(
                    replace(delivery, customer_rating=int(rating), customer_feedback=feedback)
                )

        if self.geo_index is not None and self.geo_index.get(rated.driver_id) is not None:
            self.geo_index.record_rating(rated.driver_id, rating)
        return rated

    # ---- side effects after commit ----

    def _announce(self, order: Order) -> None:
        if self.router is None:
            return

        restaurant = self.catalog.get_restaurant(order.restaurant_id)
        parties = OrderParties.from_order(order, restaurant.owner_id if restaurant else None)

        if order.status == OrderStatus.CANCELLED:
            self.router.dispatch(OrderCancelled(parties=parties, reason=order.cancellation_reason or DELIVERY_FAILED_REASON))
        else:
            self.router.dispatch(OrderStatusUpdate(parties=parties, status=order.status))

    def _refund_if_paid(self, order: Order) -> None:
        if self.payments is not None and order.payment_status == PaymentStatus.PAID:
            self.payments.refund(order.id)

"""
Purpose: Orchestrator (the "glue").
What it does:
Wires checkout, the store, the assignment engine, the delivery tracker,
payments and notifications behind one object. Every public method here is
one user-facing action: a customer placing or cancelling an order, a
restaurant moving it along, a driver claiming it, reporting progress or
pinging their location.

Rule: state changes commit first, notifications go out after, and a
notification failure never turns a committed change into an error.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from drivers.geo_index import GeoIndex
from drivers.models import DriverAvailability
from notifications.events import DriverLocationUpdated, NewOrder, OrderCancelled, OrderParties, OrderStatusUpdate
from notifications.messages import customer_status_text
from notifications.router import NotificationRouter
from notifications.transports import Transport
from orders.catalog import CatalogStore
from orders.checkout import ItemRequest, build_order
from orders.history import HistoryEntry, OrderHistory
from orders.models import Delivery, DeliveryStatus, LatLon, Order, OrderStatus, PaymentStatus
from orders.pricing import Number

from .assignment import AssignmentEngine
from .errors import DispatchError, DriverUnavailable, InvalidTransition, Unauthorized
from .locks import LockManager
from .models import Actor, ActorRole, AssignmentOutcome, TrackingResult
from .policy import DispatchPolicy, default_policy
from .state_machines import delivery_state, order_state
from .state_machines.order_state import RANK
from .store import DispatchStore
from .tracker import DeliveryTracker, delivery_lock_key

if TYPE_CHECKING:
    from payments.service import PaymentResult, PaymentService

logger = logging.getLogger(__name__)

# Statuses past "ready" come from the driver's delivery updates, never from the restaurant.
DRIVER_REPORTED_STATUSES = (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED)

# Deliveries whose driver position is worth streaming to the customer.
TRACKED_DELIVERY_STATUSES = (DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT)


@dataclass(frozen=True)
class Placement:
    order: Order
    outcome: AssignmentOutcome


class Dispatcher:
    def __init__(
        self,
        catalog: CatalogStore,
        transport: Optional[Transport] = None,
        *,
        router: Optional[NotificationRouter] = None,
        store: Optional[DispatchStore] = None,
        geo_index: Optional[GeoIndex] = None,
        payments: Optional[PaymentService] = None,
        policy: Optional[DispatchPolicy] = None,
    ):
        if router is None and transport is None:
            raise ValueError("Dispatcher needs a notification transport or router")

        self.policy = policy or default_policy()
        self.policy.validate()

        self.catalog = catalog
        self.store = store or DispatchStore(lock_timeout_seconds=self.policy.lock_timeout_seconds)
        self.geo_index = geo_index or GeoIndex()
        self.locks = LockManager(default_timeout=self.policy.lock_timeout_seconds)
        self.history = OrderHistory(limit=self.policy.order_history_limit)
        self.payments = payments

        self._executor: Optional[ThreadPoolExecutor] = None
        if router is None:
            if self.policy.notification_workers > 0:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.policy.notification_workers,
                    thread_name_prefix="notify",
                )
            router = NotificationRouter(transport, executor=self._executor)
        self.router = router

        self.engine = AssignmentEngine(self.store, self.geo_index, catalog, router=self.router, policy=self.policy)
        self.tracker = DeliveryTracker(
            self.store,
            catalog,
            router=self.router,
            payments=payments,
            geo_index=self.geo_index,
            locks=self.locks,
        )

    # ---- lifecycle ----

    def close(self) -> None:
        """Waits for queued notifications, then stops the notification workers."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> Dispatcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- customer ----

    def place_order(
        self,
        customer_id: str,
        restaurant_id: str,
        items: Iterable[ItemRequest],
        tip: Number = 0,
        delivery_location: Optional[LatLon] = None,
    ) -> Placement:
        order = build_order(
            self.catalog,
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            items=items,
            tax_rate=self.policy.tax_rate,
            tip=tip,
            delivery_location=delivery_location,
        )
        order = self.store.add_order(order)
        self.history.record(order)
        logger.info(f"Order {order.order_number} placed by customer {customer_id}, total {order.total}")

        self.router.dispatch(NewOrder(parties=self._parties(order), total=order.total))

        outcome = self.engine.assign(order.id)
        return Placement(order=self.store.require_order(order.id), outcome=outcome)

    def capture_payment(self, order_id: str) -> PaymentResult:
        if self.payments is None:
            raise DispatchError("No payment collaborator configured")
        return self.payments.capture(order_id)

    def cancel_order(self, order_id: str, actor: Actor, reason: str) -> Order:
        """
        Cancel an order on behalf of actor. Who may cancel depends on how far
        the order has got:
        - customer: pending or confirmed only
        - restaurant owner: anything before out_for_delivery
        - assigned driver / admin: any non-terminal status
        An active delivery is closed as failed in the same transaction.
        """
        self.store.require_order(order_id)
        delivery = self.store.delivery_for_order(order_id)
        lock_key = delivery_lock_key(delivery.id) if delivery else f"order:{order_id}"

        with self.locks.lock(lock_key):
            with self.store.transaction():
                current = self.store.require_order(order_id)
                self._authorize_cancel(current, actor)

                at = datetime.utcnow()
                cancelled = order_state.apply_transition(current, OrderStatus.CANCELLED, at, cancellation_reason=reason)

                # Re-read: an assignment may have committed since the lookup above.
                delivery = self.store.delivery_for_order(order_id)
                self.store.save_order(cancelled)
                if delivery is not None and delivery.is_active:
                    self.store.save_delivery(delivery_state.apply_transition(delivery, DeliveryStatus.FAILED, at))

        logger.info(f"Order {cancelled.order_number} cancelled by {actor.role.value} {actor.id}: {reason}")
        self.router.dispatch(OrderCancelled(parties=self._parties(cancelled), reason=reason))

        if self.payments is not None and cancelled.payment_status == PaymentStatus.PAID:
            self.payments.refund(cancelled.id)

        return self.store.require_order(order_id)

    def order_history(self, customer_id: str) -> List[HistoryEntry]:
        return self.history.recent(customer_id)

    def customer_view(self, order_id: str) -> str:
        """What the customer's tracking screen says right now."""
        return customer_status_text(self.store.require_order(order_id))

    # ---- restaurant ----

    def update_order_status(self, order_id: str, target: Union[OrderStatus, str], actor: Actor) -> Order:
        target = OrderStatus(target)
        if target == OrderStatus.CANCELLED:
            raise InvalidTransition(order_id, "", target.value, "use cancel_order to cancel an order")

        with self.store.transaction():
            current = self.store.require_order(order_id)
            if target in DRIVER_REPORTED_STATUSES:
                raise InvalidTransition(
                    order_id, current.status.value, target.value,
                    f"{target.value} is reported by the delivery driver",
                )
            if not self._is_admin(actor) and not self._owns_restaurant(current, actor):
                raise Unauthorized(f"{actor.role.value} {actor.id} cannot update order {current.order_number}")

            updated = self.store.save_order(order_state.apply_transition(current, target))

        logger.info(f"Order {updated.order_number}: {current.status.value} -> {updated.status.value}")
        self.router.dispatch(OrderStatusUpdate(parties=self._parties(updated), status=updated.status))
        return updated

    # ---- driver ----

    def accept_order(self, order_id: str, driver_id: str) -> AssignmentOutcome:
        return self.engine.accept(order_id, driver_id)

    def advance_delivery(
        self,
        delivery_id: str,
        new_status: Union[DeliveryStatus, str],
        actor_id: str,
    ) -> TrackingResult:
        return self.tracker.advance(delivery_id, new_status, actor_id)

    def rate_delivery(self, delivery_id: str, customer_id: str, rating: int, feedback: Optional[str] = None) -> Delivery:
        return self.tracker.rate(delivery_id, customer_id, rating, feedback)

    def nearby_orders(self, driver_id: str, radius_km: Optional[float] = None) -> List[Order]:
        driver = self.geo_index.get(driver_id)
        if driver is None:
            raise DriverUnavailable(f"Driver {driver_id} has not reported a location")
        return self.engine.open_orders_near(driver.location[0], driver.location[1], radius_km)

    def update_driver_location(self, driver_id: str, lat: float, lon: float) -> DriverAvailability:
        driver = self.geo_index.update_location(driver_id, lat, lon)

        delivery = self.store.active_delivery_for_driver(driver_id)
        if delivery is not None and delivery.status in TRACKED_DELIVERY_STATUSES:
            order = self.store.require_order(delivery.order_id)
            self.router.dispatch(
                DriverLocationUpdated(parties=self._parties(order), driver_id=driver_id, lat=lat, lon=lon)
            )
        return driver

    def set_driver_availability(self, driver_id: str, is_available: bool) -> DriverAvailability:
        return self.geo_index.set_availability(driver_id, is_available)

    # ---- background ----

    def sweep_unassigned(self) -> List[AssignmentOutcome]:
        return self.engine.sweep()

    # ---- helpers ----

    def _parties(self, order: Order) -> OrderParties:
        restaurant = self.catalog.get_restaurant(order.restaurant_id)
        return OrderParties.from_order(order, restaurant.owner_id if restaurant else None)

    def _is_admin(self, actor: Actor) -> bool:
        return actor.role == ActorRole.ADMIN

    def _owns_restaurant(self, order: Order, actor: Actor) -> bool:
        if actor.role != ActorRole.RESTAURANT:
            return False
        restaurant = self.catalog.get_restaurant(order.restaurant_id)
        return restaurant is not None and restaurant.owner_id == actor.id

    def _authorize_cancel(self, order: Order, actor: Actor) -> None:
        # Identity first, then the state machine, then the per-role status window.
        if actor.role == ActorRole.CUSTOMER and actor.id != order.customer_id:
            raise Unauthorized(f"Customer {actor.id} did not place order {order.order_number}")
        if actor.role == ActorRole.RESTAURANT and not self._owns_restaurant(order, actor):
            raise Unauthorized(f"Restaurant owner {actor.id} does not own order {order.order_number}")
        if actor.role == ActorRole.DRIVER and actor.id != order.delivery_driver_id:
            raise Unauthorized(f"Driver {actor.id} is not assigned to order {order.order_number}")

        order_state.check_transition(order, OrderStatus.CANCELLED)

        if actor.role == ActorRole.CUSTOMER and order.status not in self.policy.customer_cancellable_statuses:
            raise Unauthorized(f"Customers cannot cancel an order that is {order.status.value}")
        if actor.role == ActorRole.RESTAURANT and RANK[order.status] >= RANK[OrderStatus.OUT_FOR_DELIVERY]:
            raise Unauthorized(f"Restaurants cannot cancel an order that is {order.status.value}")

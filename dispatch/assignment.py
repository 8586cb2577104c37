"""
Purpose: Bind a new order to one driver, exclusively.
What it does:
Accepts an order id, asks the GeoIndex for ranked drivers around the
restaurant, and commits the best free one through the store's
compare-and-swap. A lost race drops that driver and tries the next, up to
the policy's attempt limit.

Two entry points share one commit primitive:
- assign():  system initiated (checkout, background sweep)
- accept():  driver initiated ("claim this order" from the driver app)
so the two paths can never disagree on who won a race.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

from drivers.geo_index import GeoIndex, haversine_km
from notifications.events import DeliveryAssigned, OrderParties
from notifications.router import NotificationRouter
from orders.catalog import CatalogStore
from orders.models import Delivery, Order, OrderStatus
from orders.pricing import split_delivery_fee

from .errors import AssignmentConflict, DriverUnavailable
from .models import Assignment, AssignmentOutcome, Unassigned
from .policy import DispatchPolicy, default_policy
from .store import DispatchStore

logger = logging.getLogger(__name__)

# Orders a driver may claim by hand: the restaurant has accepted them but nobody is driving yet.
CLAIMABLE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.PREPARING)


class AssignmentEngine:
    def __init__(
        self,
        store: DispatchStore,
        geo_index: GeoIndex,
        catalog: CatalogStore,
        router: Optional[NotificationRouter] = None,
        policy: Optional[DispatchPolicy] = None,
    ):
        self.store = store
        self.geo_index = geo_index
        self.catalog = catalog
        self.router = router
        self.policy = policy or default_policy()

    def assign(self, order_id: str) -> AssignmentOutcome:
        """
        System-initiated assignment. Never raises for "nobody available":
        that is reported as Unassigned and left for the next sweep.
        """
        order = self.store.require_order(order_id)

        if order.delivery_driver_id is not None:
            return Unassigned(order_id, AssignmentConflict.ORDER_ALREADY_ASSIGNED)
        if order.is_terminal:
            return Unassigned(order_id, AssignmentConflict.ORDER_NOT_ASSIGNABLE)

        restaurant = self.catalog.get_restaurant(order.restaurant_id)
        if restaurant is None:
            logger.warning(f"Order {order.order_number}: restaurant {order.restaurant_id} unknown, cannot search drivers")
            return Unassigned(order_id, "restaurant location unknown")

        pickup_lat, pickup_lon = restaurant.location
        radius_km = self.policy.search_radius_km
        tried: Set[str] = set()

        for attempt in range(1, self.policy.max_assignment_attempts + 1):
            ranked = self.geo_index.rank_candidates(pickup_lat, pickup_lon, radius_km, exclude=tried)

            # Drivers already carrying a delivery are online but busy.
            candidate = next(
                (c for c in ranked if not self.store.has_active_delivery(c.driver_id)),
                None,
            )
            if candidate is None:
                logger.info(f"Order {order.order_number}: no free driver within {radius_km} km, searching for a driver")
                return Unassigned(order_id, f"no available driver within {radius_km:g} km")

            try:
                return self._commit(order_id, candidate.driver_id, candidate.distance_km)
            except AssignmentConflict as conflict:
                if conflict.order_taken:
                    logger.info(f"Order {order.order_number}: {conflict.reason}, giving up")
                    return Unassigned(order_id, conflict.reason)

                logger.info(
                    f"Order {order.order_number}: attempt {attempt} lost driver "
                    f"{candidate.driver_id} ({conflict.reason}), retrying"
                )
                tried.add(candidate.driver_id)

        logger.info(
            f"Order {order.order_number}: no driver committed after "
            f"{self.policy.max_assignment_attempts} attempts, searching for a driver"
        )
        return Unassigned(order_id, f"no driver committed after {self.policy.max_assignment_attempts} attempts")

    def accept(self, order_id: str, driver_id: str) -> AssignmentOutcome:
        """
        Race Condition Resolver: called when a driver hits "Accept" in their app.
        Guarantees that two drivers (or a driver and the system) cannot both win.
        """
        if not self.geo_index.is_available(driver_id):
            raise DriverUnavailable(f"Driver {driver_id} is not available")

        order = self.store.require_order(order_id)
        distance_km = 0.0
        restaurant = self.catalog.get_restaurant(order.restaurant_id)
        if restaurant is not None:
            distance_km = self.geo_index.distance_km(driver_id, *restaurant.location) or 0.0

        try:
            return self._commit(order_id, driver_id, distance_km)
        except AssignmentConflict as conflict:
            logger.info(f"Driver {driver_id} lost order {order.order_number}: {conflict.reason}")
            return Unassigned(order_id, conflict.reason)

    def open_orders_near(self, lat: float, lon: float, radius_km: Optional[float] = None) -> List[Order]:
        """
        Driver-less orders the restaurant has accepted, whose restaurant is
        within radius_km of (lat, lon). Closest first.
        """
        radius_km = self.policy.nearby_orders_radius_km if radius_km is None else radius_km
        nearby = []

        for order in self.store.unassigned_orders():
            if order.status not in CLAIMABLE_STATUSES:
                continue
            restaurant = self.catalog.get_restaurant(order.restaurant_id)
            if restaurant is None:
                continue
            distance = haversine_km(lat, lon, *restaurant.location)
            if distance <= radius_km:
                nearby.append((distance, order))

        nearby.sort(key=lambda pair: (pair[0], pair[1].created_at))
        return [order for _, order in nearby]

    def sweep(self) -> List[AssignmentOutcome]:
        """Retry every driver-less order, oldest first."""
        return [self.assign(order.id) for order in self.store.unassigned_orders()]

    # ---- exclusive commit ----

    def _commit(self, order_id: str, driver_id: str, distance_km: float) -> Assignment:
        def build_delivery(order: Order) -> Delivery:
            driver_earnings, platform_share = split_delivery_fee(
                order.totals.delivery_fee, self.policy.driver_earnings_share
            )
            return Delivery.new(order, driver_id, driver_earnings, platform_share, distance_km=distance_km)

        order, delivery = self.store.commit_assignment(order_id, driver_id, build_delivery)
        logger.info(f"Order {order.order_number} assigned to driver {driver_id} (delivery {delivery.id})")

        if self.router is not None:
            restaurant = self.catalog.get_restaurant(order.restaurant_id)
            self.router.dispatch(
                DeliveryAssigned(
                    parties=OrderParties.from_order(order, restaurant.owner_id if restaurant else None),
                    driver_id=driver_id,
                    delivery_id=delivery.id,
                    estimated_delivery_time=order.estimated_delivery_time,
                )
            )

        return Assignment(order_id=order.id, driver_id=driver_id, delivery_id=delivery.id)

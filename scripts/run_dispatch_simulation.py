import logging
import os
import random
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pandas as pd

from dispatch import Actor, ActorRole, Assignment, Dispatcher, policy_from_env
from notifications import InMemoryTransport
from orders import DeliveryStatus, InMemoryCatalog, ItemRequest, MenuItemInfo, OrderStatus, RestaurantInfo

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

DELIVERY_STEPS = (DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED)


def load_catalog(data_dir="sampledata") -> InMemoryCatalog:
    catalog = InMemoryCatalog()

    restaurants = pd.read_csv(os.path.join(BASE_DIR, data_dir, "restaurants.csv"))
    for row in restaurants.itertuples(index=False):
        catalog.add_restaurant(
            RestaurantInfo(
                id=row.restaurant_id,
                owner_id=row.owner_id,
                location=(float(row.lat), float(row.lon)),
                delivery_fee=Decimal(str(row.delivery_fee)),
                estimated_delivery_minutes=int(row.estimated_delivery_minutes),
                name=row.name,
            )
        )

    menu_items = pd.read_csv(os.path.join(BASE_DIR, data_dir, "menu_items.csv"))
    for row in menu_items.itertuples(index=False):
        catalog.add_menu_item(
            MenuItemInfo(
                id=row.menu_item_id,
                restaurant_id=row.restaurant_id,
                name=row.name,
                price=Decimal(str(row.price)),
                is_available=bool(row.is_available),
            )
        )
    return catalog


def load_drivers(dispatcher: Dispatcher, data_dir="sampledata") -> int:
    drivers = pd.read_csv(os.path.join(BASE_DIR, data_dir, "drivers.csv"))
    for row in drivers.itertuples(index=False):
        dispatcher.update_driver_location(row.driver_id, float(row.lat), float(row.lon))
        if row.status != "available":
            dispatcher.set_driver_availability(row.driver_id, False)
    return len(drivers)


def deliver(dispatcher: Dispatcher, catalog: InMemoryCatalog, order_id: str) -> None:
    """Plays the restaurant and the driver for one assigned order."""
    order = dispatcher.store.require_order(order_id)
    owner = Actor(catalog.get_restaurant(order.restaurant_id).owner_id, ActorRole.RESTAURANT)
    dispatcher.update_order_status(order_id, OrderStatus.CONFIRMED, owner)
    dispatcher.update_order_status(order_id, OrderStatus.PREPARING, owner)

    delivery = dispatcher.store.delivery_for_order(order_id)
    for status in DELIVERY_STEPS:
        dispatcher.advance_delivery(delivery.id, status, delivery.driver_id)

    dispatcher.rate_delivery(delivery.id, order.customer_id, random.randint(3, 5))


def run_simulation(limit=200, workers=8, max_rounds=20):
    print("=== STARTING END-TO-END DISPATCH SIMULATION ===")

    # 1. Load Data
    catalog = load_catalog()
    orders = pd.read_csv(os.path.join(BASE_DIR, "sampledata", "orders.csv")).head(limit)

    transport = InMemoryTransport()
    dispatcher = Dispatcher(catalog, transport, policy=policy_from_env())
    num_drivers = load_drivers(dispatcher)
    print(f"Loaded {len(orders)} Orders and {num_drivers} Drivers.\n")

    # 2. Customers check out concurrently
    def place(row):
        placement = dispatcher.place_order(
            row.customer_id,
            row.restaurant_id,
            [ItemRequest(row.menu_item_id, quantity=int(row.quantity))],
            tip=Decimal(str(row.tip)),
            delivery_location=(float(row.dropoff_lat), float(row.dropoff_lon)),
        )
        return row.order_ref, placement

    print(f"Placing orders on {workers} threads...")
    start_time = time.time()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        placements = list(pool.map(place, orders.itertuples(index=False)))
    print(f"Placed {len(placements)} orders in {time.time() - start_time:.2f}s.\n")

    order_ids = {placement.order.id: order_ref for order_ref, placement in placements}
    first_pass = [placement.order.id for _, placement in placements if isinstance(placement.outcome, Assignment)]

    # 3. Deliver assigned orders, then sweep the waiting ones onto the freed drivers
    delivered_in_round = {}
    pending = first_pass
    for round_number in range(1, max_rounds + 1):
        if not pending:
            break
        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(lambda order_id: deliver(dispatcher, catalog, order_id), pending))
        for order_id in pending:
            delivered_in_round[order_id] = round_number

        pending = [outcome.order_id for outcome in dispatcher.sweep_unassigned() if isinstance(outcome, Assignment)]
        print(f"[ROUND {round_number}] delivered so far: {len(delivered_in_round)}, newly assigned: {len(pending)}")

    dispatcher.close()

    # 4. Results
    rows = []
    for order_id, order_ref in order_ids.items():
        order = dispatcher.store.require_order(order_id)
        delivery = dispatcher.store.delivery_for_order(order_id)
        rows.append({
            "order_ref": order_ref,
            "order_number": order.order_number,
            "status": order.status.value,
            "driver_id": order.delivery_driver_id or "UNASSIGNED",
            "round": delivered_in_round.get(order_id, "N/A"),
            "total": str(order.total),
            "driver_earnings": str(delivery.driver_earnings) if delivery else "N/A",
            "distance_km": round(delivery.distance_km, 2) if delivery else "N/A",
        })
    results = pd.DataFrame(rows)

    output_path = os.path.join(BASE_DIR, "dispatch_results.csv")
    results.to_csv(output_path, index=False)

    delivered = results[results["status"] == OrderStatus.DELIVERED.value]
    print("\n=== SIMULATION COMPLETE ===")
    print(f"Orders Delivered: {len(delivered)} / {len(results)}")
    print(f"Assigned on checkout: {len(first_pass)}")
    print(f"Still searching for a driver: {(results['driver_id'] == 'UNASSIGNED').sum()}")
    print(f"Notifications published: {len(transport.published)}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    run_simulation()

import os
import uuid

import numpy as np
import pandas as pd

# Center around Harare, Zimbabwe
CENTER_LAT = -17.824858
CENTER_LON = 31.053028

MENU = [
    ("Burger", 8.50),
    ("Chicken Wrap", 6.75),
    ("Sadza & Beef Stew", 7.20),
    ("Large Pizza", 14.00),
    ("Fries", 2.50),
    ("Milkshake", 3.80),
]


def generate_mock_data(
    num_restaurants=30,
    num_drivers=100,
    num_orders=500,
    output_dir="sampledata",
    seed=None,
):
    """
    Generates a realistic dispatch dataset: restaurants with menus, drivers
    scattered around the city, and customer carts pointing at those menus.
    Restaurants sit within ~5km of the centre and drivers within ~8km, so most
    orders find a driver inside the default 10km search radius.
    """
    rng = np.random.default_rng(seed)
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    out = os.path.join(base_dir, output_dir)
    os.makedirs(out, exist_ok=True)

    # 1. Restaurants (roughly 0.05 degrees = 5km)
    restaurants = pd.DataFrame({
        "restaurant_id": [f"r_{str(uuid.uuid4())[:8]}" for _ in range(num_restaurants)],
        "owner_id": [f"owner_{index + 1:03d}" for index in range(num_restaurants)],
        "name": [f"Restaurant {index + 1}" for index in range(num_restaurants)],
        "lat": np.round(CENTER_LAT + rng.uniform(-0.05, 0.05, num_restaurants), 6),
        "lon": np.round(CENTER_LON + rng.uniform(-0.05, 0.05, num_restaurants), 6),
        "delivery_fee": np.round(rng.choice([1.50, 2.00, 2.50, 3.00], num_restaurants), 2),
        "estimated_delivery_minutes": rng.integers(20, 50, num_restaurants),
    })

    # 2. Menus: every restaurant sells a random half of MENU, ~5% sold out
    menu_rows = []
    for restaurant_id in restaurants["restaurant_id"]:
        for name, base_price in (MENU[i] for i in rng.choice(len(MENU), size=len(MENU) // 2, replace=False)):
            menu_rows.append({
                "menu_item_id": f"mi_{str(uuid.uuid4())[:8]}",
                "restaurant_id": restaurant_id,
                "name": name,
                "price": round(base_price * rng.uniform(0.9, 1.2), 2),
                "is_available": bool(rng.random() > 0.05),
            })
    menu_items = pd.DataFrame(menu_rows)

    # 3. Drivers (roughly +/- 8km), 80% online
    drivers = pd.DataFrame({
        "driver_id": [f"DRV-{index + 1:03d}" for index in range(num_drivers)],
        "lat": np.round(CENTER_LAT + rng.uniform(-0.075, 0.075, num_drivers), 6),
        "lon": np.round(CENTER_LON + rng.uniform(-0.075, 0.075, num_drivers), 6),
        "status": rng.choice(["available", "offline"], num_drivers, p=[0.8, 0.2]),
    })

    # 4. Orders: one line per order, pointed at an available item
    available = menu_items[menu_items["is_available"]].reset_index(drop=True)
    picks = available.iloc[rng.integers(0, len(available), num_orders)].reset_index(drop=True)
    orders = pd.DataFrame({
        "order_ref": [f"o_{index + 1:06d}" for index in range(num_orders)],
        "customer_id": [f"c_{value}" for value in rng.integers(1000, 9999, num_orders)],
        "restaurant_id": picks["restaurant_id"],
        "menu_item_id": picks["menu_item_id"],
        "quantity": rng.integers(1, 4, num_orders),
        "tip": np.round(rng.choice([0.0, 0.5, 1.0, 2.0], num_orders, p=[0.5, 0.2, 0.2, 0.1]), 2),
        "dropoff_lat": np.round(CENTER_LAT + rng.uniform(-0.08, 0.08, num_orders), 6),
        "dropoff_lon": np.round(CENTER_LON + rng.uniform(-0.08, 0.08, num_orders), 6),
    })

    # 5. Save to CSV
    restaurants.to_csv(os.path.join(out, "restaurants.csv"), index=False)
    menu_items.to_csv(os.path.join(out, "menu_items.csv"), index=False)
    drivers.to_csv(os.path.join(out, "drivers.csv"), index=False)
    orders.to_csv(os.path.join(out, "orders.csv"), index=False)

    print(f"✅ Generated {num_restaurants} restaurants, {len(menu_items)} menu items, "
          f"{num_drivers} drivers and {num_orders} orders into '{out}'")

    # Quick preview of demand per restaurant
    print("\nTop 5 Restaurants by orders:")
    names = restaurants.set_index("restaurant_id")["name"]
    counts = orders["restaurant_id"].map(names).value_counts().head(5)
    for name, count in counts.items():
        print(f"  {name}: {count} orders")


if __name__ == "__main__":
    generate_mock_data()

"""
Purpose: Turn a customer's cart request into a priced, validated Order.
What it does:
- Checks every requested menu item against the catalog
- Prices items and their options from the catalog (the request names
  options, it never carries prices)
- Computes totals with the restaurant's delivery fee
- Stamps the estimated delivery time and the human-facing order number
"""

from __future__ import annotations

import itertools
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from .catalog import CatalogStore, MenuItemInfo, RestaurantInfo
from .models import ItemOption, LatLon, Order, OrderItem
from .pricing import Number, compute_totals, to_money


class OrderValidationError(ValueError):
    """Raised when a cart cannot be turned into an order."""
    pass


@dataclass(frozen=True)
class ItemRequest:
    """What the customer asked for. Variants and addons are option names on the menu item."""
    menu_item_id: str
    quantity: int = 1
    variants: Sequence[str] = ()
    addons: Sequence[str] = ()
    special_instructions: Optional[str] = None


_order_sequence = itertools.count(1)


def next_order_number(now_ms: Optional[int] = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"ORD-{now_ms}-{next(_order_sequence):04d}"


def resolve_options(menu_item: MenuItemInfo, names: Iterable[str]) -> Tuple[ItemOption, ...]:
    resolved = []
    for name in names:
        price = menu_item.options.get(name)
        if price is None:
            raise OrderValidationError(f"Option {name} is not offered for {menu_item.name}")
        if price < 0:
            raise OrderValidationError(f"Option {name} on {menu_item.name} has a negative price")
        resolved.append(ItemOption(name, to_money(price)))
    return tuple(resolved)


def validate_items(
    catalog: CatalogStore,
    restaurant: RestaurantInfo,
    requested: Iterable[ItemRequest],
) -> List[OrderItem]:
    validated: List[OrderItem] = []

    for request in requested:
        if request.quantity < 1:
            raise OrderValidationError(f"Quantity for menu item {request.menu_item_id} must be at least 1")

        menu_item = catalog.get_menu_item(request.menu_item_id)
        if menu_item is None:
            raise OrderValidationError(f"Menu item {request.menu_item_id} not found")
        if menu_item.restaurant_id != restaurant.id:
            raise OrderValidationError(f"Menu item {menu_item.name} is not sold by restaurant {restaurant.id}")
        if not menu_item.is_available:
            raise OrderValidationError(f"Menu item {menu_item.name} is not available")

        validated.append(
            OrderItem(
                menu_item_id=menu_item.id,
                quantity=request.quantity,
                unit_price=to_money(menu_item.price),
                variants=resolve_options(menu_item, request.variants),
                addons=resolve_options(menu_item, request.addons),
                special_instructions=request.special_instructions,
            )
        )

    if not validated:
        raise OrderValidationError("An order needs at least one item")

    return validated


def build_order(
    catalog: CatalogStore,
    *,
    customer_id: str,
    restaurant_id: str,
    items: Iterable[ItemRequest],
    tax_rate: Number,
    tip: Number = 0,
    delivery_location: Optional[LatLon] = None,
    now: Optional[datetime] = None,
) -> Order:
    restaurant = catalog.get_restaurant(restaurant_id)
    if restaurant is None:
        raise OrderValidationError(f"Restaurant {restaurant_id} not found")

    now = now or datetime.utcnow()
    order_items = validate_items(catalog, restaurant, items)

    try:
        totals = compute_totals(order_items, restaurant.delivery_fee, tax_rate, tip)
    except ValueError as exc:
        raise OrderValidationError(str(exc)) from exc

    return Order(
        id=str(uuid.uuid4()),
        order_number=next_order_number(),
        customer_id=customer_id,
        restaurant_id=restaurant.id,
        items=tuple(order_items),
        totals=totals,
        delivery_location=delivery_location,
        estimated_delivery_time=now + timedelta(minutes=restaurant.estimated_delivery_minutes),
        created_at=now,
    )

"""
Purpose: Read-only view of the restaurant/menu catalog.
What it does:
The catalog itself lives outside the dispatcher. This module only defines the
shape of the two lookups the dispatcher needs (restaurant location + delivery
fee, menu item price + availability + option surcharges) and a
dictionary-backed implementation used by the tests and the simulation script.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Mapping, Optional, Protocol, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class RestaurantInfo:
    id: str
    owner_id: str
    location: LatLon
    delivery_fee: Decimal = Decimal("0.00")
    estimated_delivery_minutes: int = 30
    name: str = ""


@dataclass(frozen=True)
class MenuItemInfo:
    id: str
    restaurant_id: str
    name: str
    price: Decimal
    is_available: bool = True
    # Variant and addon surcharges by option name.
    options: Mapping[str, Decimal] = field(default_factory=dict)


class CatalogStore(Protocol):
    def get_restaurant(self, restaurant_id: str) -> Optional[RestaurantInfo]:
        ...

    def get_menu_item(self, menu_item_id: str) -> Optional[MenuItemInfo]:
        ...


class InMemoryCatalog:
    def __init__(self) -> None:
        self._restaurants: Dict[str, RestaurantInfo] = {}
        self._menu_items: Dict[str, MenuItemInfo] = {}

    def add_restaurant(self, restaurant: RestaurantInfo) -> RestaurantInfo:
        self._restaurants[restaurant.id] = restaurant
        return restaurant

    def add_menu_item(self, menu_item: MenuItemInfo) -> MenuItemInfo:
        self._menu_items[menu_item.id] = menu_item
        return menu_item

    def get_restaurant(self, restaurant_id: str) -> Optional[RestaurantInfo]:
        return self._restaurants.get(restaurant_id)

    def get_menu_item(self, menu_item_id: str) -> Optional[MenuItemInfo]:
        return self._menu_items.get(menu_item_id)

"""
Orders domain package.

Public API:
- Domain models: Order, Delivery, OrderItem, ItemOption, OrderTotals
- Status enums: OrderStatus, PaymentStatus, DeliveryStatus
- Checkout: build_order, ItemRequest, OrderValidationError
- Pricing: compute_totals, split_delivery_fee, to_money
- Catalog interface: CatalogStore, InMemoryCatalog, RestaurantInfo, MenuItemInfo
- OrderHistory (bounded per-customer history)
"""
from .models import (
    Delivery,
    DeliveryStatus,
    ItemOption,
    Order,
    OrderItem,
    OrderStatus,
    OrderTotals,
    PaymentStatus,
)
from .catalog import CatalogStore, InMemoryCatalog, MenuItemInfo, RestaurantInfo
from .checkout import ItemRequest, OrderValidationError, build_order
from .history import OrderHistory
from .pricing import compute_totals, split_delivery_fee, to_money

__all__ = [
    "Order",
    "Delivery",
    "OrderItem",
    "ItemOption",
    "OrderTotals",
    "OrderStatus",
    "PaymentStatus",
    "DeliveryStatus",
    "CatalogStore",
    "InMemoryCatalog",
    "RestaurantInfo",
    "MenuItemInfo",
    "ItemRequest",
    "OrderValidationError",
    "build_order",
    "OrderHistory",
    "compute_totals",
    "split_delivery_fee",
    "to_money",
]

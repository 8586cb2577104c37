"""
Purpose: Human-readable text for every (event, role) pair, and the JSON
payload a transport publishes.

The same event reads differently per role: a customer is told "your order",
the restaurant is told about "order #N from <customer>", the driver about
their assignment. Keep that distinction when adding new events.
"""

from __future__ import annotations

from typing import Any, Dict

from orders.models import Order, OrderStatus

from .events import (
    DeliveryAssigned,
    DriverLocationUpdated,
    NewOrder,
    NotificationEvent,
    OrderCancelled,
    OrderStatusUpdate,
    Recipient,
    Role,
)

DEFAULT_STATUS_MESSAGE = "Order status updated"
SEARCHING_FOR_DRIVER = "Searching for a driver"

STATUS_MESSAGES: Dict[Role, Dict[OrderStatus, str]] = {
    Role.CUSTOMER: {
        OrderStatus.PENDING: "Your order has been received and is being processed",
        OrderStatus.CONFIRMED: "Your order has been confirmed by the restaurant",
        OrderStatus.PREPARING: "Your order is being prepared",
        OrderStatus.READY: "Your order is ready for pickup",
        OrderStatus.OUT_FOR_DELIVERY: "Your order is out for delivery",
        OrderStatus.DELIVERED: "Your order has been delivered",
        OrderStatus.CANCELLED: "Your order has been cancelled",
    },
    Role.RESTAURANT: {
        OrderStatus.PENDING: "New order received",
        OrderStatus.CONFIRMED: "Order confirmed",
        OrderStatus.PREPARING: "Order is being prepared",
        OrderStatus.READY: "Order is ready for pickup",
        OrderStatus.OUT_FOR_DELIVERY: "Order is out for delivery",
        OrderStatus.DELIVERED: "Order has been delivered",
        OrderStatus.CANCELLED: "Order has been cancelled",
    },
    Role.DRIVER: {
        OrderStatus.PENDING: "New delivery assignment",
        OrderStatus.CONFIRMED: "Order confirmed for delivery",
        OrderStatus.PREPARING: "Order is being prepared",
        OrderStatus.READY: "Order is ready for pickup",
        OrderStatus.OUT_FOR_DELIVERY: "Order is out for delivery",
        OrderStatus.DELIVERED: "Order has been delivered",
        OrderStatus.CANCELLED: "Order has been cancelled",
    },
}


def status_message(status: OrderStatus, role: Role) -> str:
    # The management channel sees the restaurant's wording.
    table_role = Role.RESTAURANT if role is Role.MANAGEMENT else role
    return STATUS_MESSAGES.get(table_role, {}).get(status, DEFAULT_STATUS_MESSAGE)


def message_for(event: NotificationEvent, role: Role) -> str:
    number = event.parties.order_number

    if isinstance(event, OrderStatusUpdate):
        return status_message(event.status, role)

    if isinstance(event, NewOrder):
        return f"New order #{number} from customer {event.parties.customer_id}"

    if isinstance(event, DeliveryAssigned):
        if role is Role.DRIVER:
            return f"You have been assigned order #{number}"
        return f"Your order has been assigned to driver {event.driver_id}"

    if isinstance(event, OrderCancelled):
        if role is Role.CUSTOMER:
            return f"Your order #{number} has been cancelled. Reason: {event.reason}"
        if role in (Role.RESTAURANT, Role.MANAGEMENT):
            return f"Order #{number} from customer {event.parties.customer_id} has been cancelled"
        return f"Order #{number} has been cancelled"

    if isinstance(event, DriverLocationUpdated):
        if role is Role.CUSTOMER:
            return "Your driver's location has been updated"
        return f"Driver location updated for order #{number}"

    raise TypeError(f"Unknown notification event: {type(event).__name__}")


def payload_for(event: NotificationEvent, recipient: Recipient) -> Dict[str, Any]:
    """JSON-ready body for one recipient. Only the message differs between recipients."""
    parties = event.parties
    payload: Dict[str, Any] = {
        "type": event.event_type.value,
        "orderId": parties.order_id,
        "orderNumber": parties.order_number,
        "role": recipient.role.value,
        "message": message_for(event, recipient.role),
        "timestamp": event.timestamp.isoformat(),
    }

    if isinstance(event, OrderStatusUpdate):
        payload["status"] = event.status.value
    elif isinstance(event, NewOrder):
        payload["total"] = str(event.total)
    elif isinstance(event, DeliveryAssigned):
        payload["driverId"] = event.driver_id
        payload["deliveryId"] = event.delivery_id
        if event.estimated_delivery_time is not None:
            payload["estimatedDeliveryTime"] = event.estimated_delivery_time.isoformat()
    elif isinstance(event, OrderCancelled):
        payload["reason"] = event.reason
    elif isinstance(event, DriverLocationUpdated):
        payload["driverId"] = event.driver_id
        payload["location"] = {"latitude": event.lat, "longitude": event.lon}

    return payload


def customer_status_text(order: Order) -> str:
    """What the customer sees for an order right now."""
    if order.delivery_driver_id is None and not order.is_terminal:
        return SEARCHING_FOR_DRIVER
    return status_message(order.status, Role.CUSTOMER)

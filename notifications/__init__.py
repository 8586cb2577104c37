#Notification fan-out package.
#Re-exports the event variants, the router and the transports so callers
#import from notifications without knowing internal file names.

from .events import (
    DeliveryAssigned,
    DriverLocationUpdated,
    EventType,
    NewOrder,
    NotificationEvent,
    OrderCancelled,
    OrderParties,
    OrderStatusUpdate,
    Recipient,
    Role,
    restaurant_channel,
    user_channel,
)
from .messages import customer_status_text, message_for, payload_for
from .router import NotificationRouter
from .transports import HttpTransport, InMemoryTransport, Transport, TransportUnavailable

__all__ = [
    "EventType",
    "Role",
    "Recipient",
    "OrderParties",
    "OrderStatusUpdate",
    "NewOrder",
    "DeliveryAssigned",
    "OrderCancelled",
    "DriverLocationUpdated",
    "NotificationEvent",
    "user_channel",
    "restaurant_channel",
    "message_for",
    "payload_for",
    "customer_status_text",
    "NotificationRouter",
    "Transport",
    "InMemoryTransport",
    "HttpTransport",
    "TransportUnavailable",
]

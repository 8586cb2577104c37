"""
Purpose: Fan a committed state change out to everyone who must hear about it.
What it does:
- Derives the recipient set from the event variant (and only from it)
- Builds a role-specific payload per recipient
- Publishes through the injected transport, best effort

Delivery contract:
- A failed publish is logged and dropped; the remaining recipients still get theirs.
- dispatch() never raises and, with an executor, never blocks the caller.
- Nothing is retried. Notifications are a side channel, not part of the order's durability.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from typing import List, Optional

from .events import (
    DeliveryAssigned,
    DriverLocationUpdated,
    NewOrder,
    NotificationEvent,
    OrderCancelled,
    OrderStatusUpdate,
    Recipient,
    Role,
    restaurant_channel,
    user_channel,
)
from .messages import payload_for
from .transports import Transport, TransportUnavailable

logger = logging.getLogger(__name__)


class NotificationRouter:
    def __init__(self, transport: Transport, executor: Optional[Executor] = None):
        self.transport = transport
        self.executor = executor

    def recipients_for(self, event: NotificationEvent) -> List[Recipient]:
        parties = event.parties
        recipients: List[Recipient] = []

        def add(role: Role, channel: str) -> None:
            # One publish per channel; the first role wins when ids overlap.
            if all(recipient.channel != channel for recipient in recipients):
                recipients.append(Recipient(role, channel))

        def add_user(role: Role, user_id: Optional[str]) -> None:
            if user_id:
                add(role, user_channel(user_id))

        def add_management() -> None:
            add(Role.MANAGEMENT, restaurant_channel(parties.restaurant_id))

        if isinstance(event, OrderStatusUpdate):
            add_user(Role.CUSTOMER, parties.customer_id)
            add_user(Role.RESTAURANT, parties.restaurant_owner_id)
            add_user(Role.DRIVER, parties.driver_id)
            add_management()
        elif isinstance(event, NewOrder):
            add_user(Role.RESTAURANT, parties.restaurant_owner_id)
            add_management()
        elif isinstance(event, DeliveryAssigned):
            add_user(Role.CUSTOMER, parties.customer_id)
            add_user(Role.DRIVER, event.driver_id)
        elif isinstance(event, OrderCancelled):
            add_user(Role.CUSTOMER, parties.customer_id)
            add_user(Role.RESTAURANT, parties.restaurant_owner_id)
            add_user(Role.DRIVER, parties.driver_id)
        elif isinstance(event, DriverLocationUpdated):
            add_user(Role.CUSTOMER, parties.customer_id)
            add_management()
        else:
            raise TypeError(f"Unknown notification event: {type(event).__name__}")

        return recipients

    def route(self, event: NotificationEvent) -> int:
        """Publish to every recipient. Returns how many publishes succeeded."""
        delivered = 0
        for recipient in self.recipients_for(event):
            try:
                self.transport.publish(recipient.channel, payload_for(event, recipient))
            except TransportUnavailable as exc:
                logger.warning(
                    f"Dropped {event.event_type.value} for order {event.parties.order_number} "
                    f"to {recipient.channel}: {exc}"
                )
                continue
            delivered += 1

        logger.debug(f"Routed {event.event_type.value} for order {event.parties.order_number} to {delivered} recipients")
        return delivered

    def dispatch(self, event: NotificationEvent) -> Optional[Future]:
        """
        Fire-and-forget entry point used by the state-changing components.
        Returns the Future when running on an executor, None when routed inline.
        """
        if self.executor is not None:
            try:
                return self.executor.submit(self._route_quietly, event)
            except RuntimeError as exc:
                # Executor already shut down.
                logger.warning(f"Dropped {event.event_type.value} for order {event.parties.order_number}: {exc}")
                return None

        self._route_quietly(event)
        return None

    def _route_quietly(self, event: NotificationEvent) -> int:
        try:
            return self.route(event)
        except Exception:
            logger.exception(f"Notification routing failed for {event.event_type.value} order {event.parties.order_number}")
            return 0

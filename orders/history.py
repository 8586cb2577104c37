"""
Per-customer order history, capped at the last N orders.

The cap is enforced here and only here: each customer's history is a
deque(maxlen=N), so recording the N+1th order drops the oldest one.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Deque, Dict, List

from .models import Order


@dataclass(frozen=True)
class HistoryEntry:
    order_id: str
    restaurant_id: str
    menu_item_ids: tuple
    ordered_at: datetime


class OrderHistory:
    def __init__(self, limit: int = 50):
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self._entries: Dict[str, Deque[HistoryEntry]] = {}
        self._lock = Lock()

    def record(self, order: Order) -> HistoryEntry:
        entry = HistoryEntry(
            order_id=order.id,
            restaurant_id=order.restaurant_id,
            menu_item_ids=tuple(item.menu_item_id for item in order.items),
            ordered_at=order.created_at,
        )
        with self._lock:
            history = self._entries.setdefault(order.customer_id, deque(maxlen=self.limit))
            history.append(entry)
        return entry

    def recent(self, customer_id: str) -> List[HistoryEntry]:
        """Oldest first."""
        with self._lock:
            return list(self._entries.get(customer_id, ()))

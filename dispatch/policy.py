"""
Purpose: Central configuration for dispatch (single source of truth).
What it does:

Stores all tunable thresholds/caps for assignment, pricing and timeouts:

SEARCH_RADIUS_KM = 10
MAX_ASSIGNMENT_ATTEMPTS = 3
DRIVER_EARNINGS_SHARE = 0.80
TAX_RATE = 0.08

Rule: No logic here, just parameters so you can tune without rewriting code.
Values can be overridden from the environment (or a .env file) through
policy_from_env().
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from orders.models import OrderStatus


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for the order fulfillment dispatcher.
    """

    # --- Candidate search ---
    # Radius around the restaurant searched for drivers on every assignment attempt.
    search_radius_km: float = 10.0

    # Radius used when a driver browses unassigned orders near them.
    nearby_orders_radius_km: float = 5.0

    # --- Exclusive commit ---
    # How many drivers to try before reporting the order as Unassigned.
    max_assignment_attempts: int = 3

    # --- Money ---
    # Fixed split of the delivery fee. Not negotiated per order.
    driver_earnings_share: Decimal = Decimal("0.80")
    tax_rate: Decimal = Decimal("0.08")

    # --- Cancellation ---
    customer_cancellable_statuses: FrozenSet[OrderStatus] = field(
        default_factory=lambda: frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})
    )

    # --- Bookkeeping ---
    order_history_limit: int = 50

    # --- Timeouts ---
    # Upper bound on any lock wait (store transaction, per-delivery lock).
    lock_timeout_seconds: float = 2.0

    # Worker threads for fire-and-forget notifications (0 = route inline).
    notification_workers: int = 4

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup.
        """
        if self.search_radius_km <= 0:
            raise ValueError("search_radius_km must be > 0")

        if self.nearby_orders_radius_km <= 0:
            raise ValueError("nearby_orders_radius_km must be > 0")

        if self.max_assignment_attempts < 1:
            raise ValueError("max_assignment_attempts must be >= 1")

        if not (Decimal("0") <= self.driver_earnings_share <= Decimal("1")):
            raise ValueError("driver_earnings_share must be between 0 and 1")

        if self.tax_rate < 0:
            raise ValueError("tax_rate must be >= 0")

        if self.order_history_limit < 1:
            raise ValueError("order_history_limit must be >= 1")

        if self.lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be > 0")

        if self.notification_workers < 0:
            raise ValueError("notification_workers must be >= 0")


def default_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p


def policy_from_env(dotenv_path: Optional[str] = None) -> DispatchPolicy:
    """
    Build a policy from DISPATCH_* environment variables, falling back to the defaults.

    Example in .env:
    DISPATCH_SEARCH_RADIUS_KM=8
    DISPATCH_MAX_ASSIGNMENT_ATTEMPTS=5
    """
    load_dotenv(dotenv_path)
    defaults = DispatchPolicy()

    def env(name: str, default, cast):
        raw = os.getenv(f"DISPATCH_{name}")
        return cast(raw) if raw not in (None, "") else default

    p = DispatchPolicy(
        search_radius_km=env("SEARCH_RADIUS_KM", defaults.search_radius_km, float),
        nearby_orders_radius_km=env("NEARBY_ORDERS_RADIUS_KM", defaults.nearby_orders_radius_km, float),
        max_assignment_attempts=env("MAX_ASSIGNMENT_ATTEMPTS", defaults.max_assignment_attempts, int),
        driver_earnings_share=env("DRIVER_EARNINGS_SHARE", defaults.driver_earnings_share, Decimal),
        tax_rate=env("TAX_RATE", defaults.tax_rate, Decimal),
        order_history_limit=env("ORDER_HISTORY_LIMIT", defaults.order_history_limit, int),
        lock_timeout_seconds=env("LOCK_TIMEOUT_SECONDS", defaults.lock_timeout_seconds, float),
        notification_workers=env("NOTIFICATION_WORKERS", defaults.notification_workers, int),
    )
    p.validate()
    return p

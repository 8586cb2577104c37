"""
Purpose: Money math for orders and deliveries.

Rounding rule: amounts are Decimal cents. Tax is the only derived term that
can produce sub-cent values; it is rounded half-up to the cent before it is
added to the total. The driver's share of the delivery fee is rounded the
same way and the platform keeps the exact remainder, so the two always sum
back to the fee.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple, Union

from .models import OrderItem, OrderTotals

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Quantize to cents. Floats go through str() so 0.1 stays 0.1."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(
    items: Iterable[OrderItem],
    delivery_fee: Number,
    tax_rate: Number,
    tip: Number = 0,
) -> OrderTotals:
    """
    subtotal = sum of line totals
    tax      = round_half_up(subtotal * tax_rate)
    total    = subtotal + delivery_fee + tax + tip
    """
    subtotal = to_money(sum((item.line_total for item in items), Decimal("0")))
    fee = to_money(delivery_fee)
    tip_amount = to_money(tip)

    if subtotal < 0:
        raise ValueError("subtotal must be >= 0")
    if fee < 0:
        raise ValueError("delivery_fee must be >= 0")
    if tip_amount < 0:
        raise ValueError("tip must be >= 0")

    rate = Decimal(str(tax_rate)) if isinstance(tax_rate, float) else Decimal(tax_rate)
    tax = to_money(subtotal * rate)

    return OrderTotals(
        subtotal=subtotal,
        delivery_fee=fee,
        tax=tax,
        tip=tip_amount,
        total=subtotal + fee + tax + tip_amount,
    )


def split_delivery_fee(delivery_fee: Number, driver_share: Number) -> Tuple[Decimal, Decimal]:
    """Returns (driver_earnings, platform_share)."""
    fee = to_money(delivery_fee)
    share = Decimal(str(driver_share)) if isinstance(driver_share, float) else Decimal(driver_share)
    driver_earnings = to_money(fee * share)
    return driver_earnings, fee - driver_earnings

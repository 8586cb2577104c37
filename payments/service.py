"""
Purpose: React to the payment collaborator's outcomes.
What it does:
The dispatcher never implements payment logic. It asks the collaborator to
capture or refund an order's total and records the outcome on the order's
payment_status. Order totals are never rewritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Protocol

from orders.models import PaymentStatus

if TYPE_CHECKING:
    from dispatch.store import DispatchStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    reference: Optional[str] = None
    error: Optional[str] = None


class PaymentCollaborator(Protocol):
    def capture(self, order_id: str, amount: Decimal) -> PaymentResult:
        ...

    def refund(self, order_id: str, amount: Decimal) -> PaymentResult:
        ...


class PaymentService:
    def __init__(self, store: DispatchStore, collaborator: PaymentCollaborator):
        self.store = store
        self.collaborator = collaborator

    def capture(self, order_id: str) -> PaymentResult:
        order = self.store.require_order(order_id)
        if order.payment_status == PaymentStatus.PAID:
            return PaymentResult(success=True, error="Already paid")
        if order.payment_status == PaymentStatus.REFUNDED:
            return PaymentResult(success=False, error="Order has been refunded")

        result = self.collaborator.capture(order.id, order.total)
        self._set_status(order_id, PaymentStatus.PAID if result.success else PaymentStatus.FAILED)

        if not result.success:
            logger.warning(f"Payment capture failed for order {order.order_number}: {result.error}")
        return result

    def refund(self, order_id: str) -> PaymentResult:
        order = self.store.require_order(order_id)
        if order.payment_status != PaymentStatus.PAID:
            return PaymentResult(success=False, error=f"Payment is {order.payment_status.value}, nothing to refund")

        result = self.collaborator.refund(order.id, order.total)
        if result.success:
            self._set_status(order_id, PaymentStatus.REFUNDED)
            logger.info(f"Refunded {order.total} for order {order.order_number}")
        else:
            logger.error(f"Refund failed for order {order.order_number}: {result.error}")
        return result

    def _set_status(self, order_id: str, status: PaymentStatus) -> None:
        # Re-read inside the transaction so a concurrent status change is not lost.
        with self.store.transaction():
            current = self.store.require_order(order_id)
            self.store.save_order(replace(current, payment_status=status))

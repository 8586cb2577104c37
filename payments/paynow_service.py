from paynow import Paynow
from dotenv import load_dotenv
from decimal import Decimal
import logging
import os

from .service import PaymentResult

# Using mock credentials for dev if not provided
load_dotenv()
PAYNOW_INTEGRATION_ID = os.getenv('PAYNOW_INTEGRATION_ID', '99999')
PAYNOW_INTEGRATION_KEY = os.getenv('PAYNOW_INTEGRATION_KEY', '12345678')
PAYNOW_RETURN_URL = os.getenv('PAYNOW_RETURN_URL', 'http://localhost/payments/return')
PAYNOW_RESULT_URL = os.getenv('PAYNOW_RESULT_URL', 'http://localhost/payments/result')
PAYNOW_AUTH_EMAIL = os.getenv('PAYNOW_AUTH_EMAIL', 'payments@example.com')

logger = logging.getLogger(__name__)


class PaynowPaymentCollaborator:
    """
    Payment collaborator backed by Paynow.
    capture() creates a transaction for the order total and polls it once;
    the capture only counts as successful when Paynow reports it paid.
    """

    def __init__(self, paynow=None, auth_email=None):
        self.paynow = paynow or Paynow(
            PAYNOW_INTEGRATION_ID,
            PAYNOW_INTEGRATION_KEY,
            PAYNOW_RETURN_URL,
            PAYNOW_RESULT_URL,
        )
        self.auth_email = auth_email or PAYNOW_AUTH_EMAIL

    def capture(self, order_id: str, amount: Decimal) -> PaymentResult:
        payment = self.paynow.create_payment(f'Order #{order_id}', self.auth_email)

        # One line item for the total; item pricing already happened at checkout
        payment.add('Order Total', float(amount))

        try:
            response = self.paynow.send(payment)
            if not response.success:
                return PaymentResult(success=False, error=f"Paynow error: {getattr(response, 'error', 'unknown')}")

            status = self.paynow.check_transaction_status(response.poll_url)
        except Exception as e:
            logger.error(f"Paynow Exception: {e}")
            return PaymentResult(success=False, error=str(e))

        if status.paid:
            return PaymentResult(success=True, reference=response.poll_url)
        return PaymentResult(success=False, reference=response.poll_url, error=f"Paynow status: {status.status}")

    def refund(self, order_id: str, amount: Decimal) -> PaymentResult:
        """
        Paynow has no refund endpoint; refunds are issued from the merchant dashboard.
        Report the failure so the order keeps its paid status and the error is logged.
        """
        logger.warning(f"Refund of {amount} for order {order_id} must be issued manually in Paynow")
        return PaymentResult(success=False, error="Paynow does not support programmatic refunds")

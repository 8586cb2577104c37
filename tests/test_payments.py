import pytest
from decimal import Decimal

from orders.models import PaymentStatus
from payments.paynow_service import PaynowPaymentCollaborator
from payments.service import PaymentService


@pytest.fixture
def stored(store, make_order):
    return store.add_order(make_order())


def test_capture_marks_the_order_paid(store, payments, gateway, stored):
    result = payments.capture(stored.id)

    assert result.success
    assert gateway.captured == [(stored.id, Decimal("29.57"))]
    assert store.get_order(stored.id).payment_status == PaymentStatus.PAID


def test_declined_capture_marks_the_order_failed(store, stored, make_gateway):
    service = PaymentService(store, make_gateway(capture_ok=False))

    result = service.capture(stored.id)

    assert not result.success
    assert result.error == "card declined"
    assert store.get_order(stored.id).payment_status == PaymentStatus.FAILED


def test_capturing_twice_charges_once(payments, gateway, stored):
    payments.capture(stored.id)
    second = payments.capture(stored.id)

    assert second.success
    assert len(gateway.captured) == 1


def test_refund_only_for_paid_orders(store, payments, gateway, stored):
    assert not payments.refund(stored.id).success
    assert gateway.refunded == []

    payments.capture(stored.id)
    assert payments.refund(stored.id).success
    assert store.get_order(stored.id).payment_status == PaymentStatus.REFUNDED

    # Refunded orders cannot be captured again
    assert not payments.capture(stored.id).success


def test_failed_refund_keeps_the_order_paid_and_logs(store, stored, make_gateway, caplog):
    service = PaymentService(store, make_gateway(refund_ok=False))
    service.capture(stored.id)

    result = service.refund(stored.id)

    assert not result.success
    assert store.get_order(stored.id).payment_status == PaymentStatus.PAID
    assert "Refund failed" in caplog.text


def test_totals_are_never_rewritten(store, payments, stored):
    payments.capture(stored.id)
    payments.refund(stored.id)

    assert store.get_order(stored.id).totals == stored.totals


# ---- Paynow adapter ----

class FakePaynowPayment:
    def __init__(self, reference, email):
        self.reference = reference
        self.email = email
        self.items = []

    def add(self, title, amount):
        self.items.append((title, amount))


class FakePaynowResponse:
    def __init__(self, success, poll_url=None, error=None):
        self.success = success
        self.poll_url = poll_url
        self.error = error


class FakePaynowStatus:
    def __init__(self, paid, status):
        self.paid = paid
        self.status = status


class FakePaynow:
    def __init__(self, send_ok=True, paid=True, raise_on_send=None):
        self.send_ok = send_ok
        self.paid = paid
        self.raise_on_send = raise_on_send
        self.sent = []

    def create_payment(self, reference, email):
        return FakePaynowPayment(reference, email)

    def send(self, payment):
        if self.raise_on_send:
            raise self.raise_on_send
        self.sent.append(payment)
        if not self.send_ok:
            return FakePaynowResponse(False, error="Invalid integration")
        return FakePaynowResponse(True, poll_url="https://paynow.example/poll/1")

    def check_transaction_status(self, poll_url):
        return FakePaynowStatus(self.paid, "Paid" if self.paid else "Awaiting Delivery")


def test_paynow_capture_succeeds_when_paid():
    paynow = FakePaynow()
    collaborator = PaynowPaymentCollaborator(paynow=paynow, auth_email="shop@example.com")

    result = collaborator.capture("order-1", Decimal("29.57"))

    assert result.success
    assert result.reference == "https://paynow.example/poll/1"
    (payment,) = paynow.sent
    assert payment.reference == "Order #order-1"
    assert payment.email == "shop@example.com"
    assert payment.items == [("Order Total", 29.57)]


def test_paynow_capture_fails_when_not_paid_yet():
    result = PaynowPaymentCollaborator(paynow=FakePaynow(paid=False)).capture("order-1", Decimal("10.00"))

    assert not result.success
    assert result.error == "Paynow status: Awaiting Delivery"


def test_paynow_capture_reports_rejected_and_crashing_sends():
    rejected = PaynowPaymentCollaborator(paynow=FakePaynow(send_ok=False)).capture("order-1", Decimal("10.00"))
    crashed = PaynowPaymentCollaborator(paynow=FakePaynow(raise_on_send=ConnectionError("timeout"))).capture(
        "order-1", Decimal("10.00")
    )

    assert not rejected.success and "Invalid integration" in rejected.error
    assert not crashed.success and crashed.error == "timeout"


def test_paynow_refund_is_reported_as_unsupported():
    result = PaynowPaymentCollaborator(paynow=FakePaynow()).refund("order-1", Decimal("10.00"))

    assert not result.success
    assert "does not support" in result.error

import pytest
import threading
from dataclasses import replace
from decimal import Decimal

from dispatch.errors import AssignmentConflict, LockTimeout, OrderNotFound, StoreTimeout
from dispatch.locks import LockManager
from dispatch.store import DispatchStore
from orders.models import Delivery, DeliveryStatus, OrderStatus


def build_delivery_for(driver_id):
    def _build(order):
        return Delivery.new(order, driver_id, Decimal("2.40"), Decimal("0.60"))
    return _build


def run_in_thread(fn):
    """Runs fn on another thread and returns (result, error)."""
    outcome = {}

    def target():
        try:
            outcome["result"] = fn()
        except Exception as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=target)
    worker.start()
    worker.join(timeout=5)
    return outcome.get("result"), outcome.get("error")


def test_add_order_is_idempotent(store, make_order):
    order = make_order()

    first = store.add_order(order)
    second = store.add_order(replace(order, status=OrderStatus.CONFIRMED))

    assert first is second
    assert store.get_order(order.id).status == OrderStatus.PENDING
    assert len(store.orders()) == 1


def test_missing_records_raise_not_found(store):
    with pytest.raises(OrderNotFound):
        store.require_order("nope")
    with pytest.raises(KeyError):
        store.require_delivery("nope")


def test_commit_assignment_binds_order_and_driver(store, make_order):
    order = store.add_order(make_order())

    assigned, delivery = store.commit_assignment(order.id, "driver_1", build_delivery_for("driver_1"))

    assert assigned.delivery_driver_id == "driver_1"
    assert store.delivery_for_order(order.id) == delivery
    assert store.active_delivery_for_driver("driver_1") == delivery
    assert store.unassigned_orders() == []


@pytest.mark.parametrize(
    "setup, reason",
    [
        ("order_taken", AssignmentConflict.ORDER_ALREADY_ASSIGNED),
        ("driver_busy", AssignmentConflict.DRIVER_BUSY),
        ("order_cancelled", AssignmentConflict.ORDER_NOT_ASSIGNABLE),
    ],
)
def test_commit_assignment_conflicts(store, make_order, setup, reason):
    order = store.add_order(make_order(status=OrderStatus.CANCELLED if setup == "order_cancelled" else OrderStatus.PENDING))
    if setup == "order_taken":
        store.commit_assignment(order.id, "driver_2", build_delivery_for("driver_2"))
    if setup == "driver_busy":
        other = store.add_order(make_order())
        store.commit_assignment(other.id, "driver_1", build_delivery_for("driver_1"))

    with pytest.raises(AssignmentConflict) as excinfo:
        store.commit_assignment(order.id, "driver_1", build_delivery_for("driver_1"))

    assert excinfo.value.reason == reason
    assert excinfo.value.order_taken == (reason != AssignmentConflict.DRIVER_BUSY)


def test_driver_is_written_once(store, make_order):
    order = store.add_order(make_order())
    assigned, _ = store.commit_assignment(order.id, "driver_1", build_delivery_for("driver_1"))

    with pytest.raises(ValueError):
        store.save_order(replace(assigned, delivery_driver_id="driver_2"))


def test_terminal_delivery_frees_the_driver(store, make_order):
    order = store.add_order(make_order())
    _, delivery = store.commit_assignment(order.id, "driver_1", build_delivery_for("driver_1"))

    store.save_delivery(replace(delivery, status=DeliveryStatus.FAILED))

    assert not store.has_active_delivery("driver_1")
    assert store.deliveries_for_driver("driver_1")[0].status == DeliveryStatus.FAILED


def test_store_transaction_times_out_instead_of_waiting_forever(make_order):
    store = DispatchStore(lock_timeout_seconds=0.05)

    with store.transaction():
        _, error = run_in_thread(lambda: store.add_order(make_order()))

    assert isinstance(error, StoreTimeout)


def test_lock_manager_serializes_a_key_and_times_out():
    locks = LockManager(default_timeout=0.05)

    def take(key):
        with locks.lock(key):
            return key

    with locks.lock("delivery:1"):
        _, same_key = run_in_thread(lambda: take("delivery:1"))
        other_key, other_error = run_in_thread(lambda: take("delivery:2"))

    assert isinstance(same_key, LockTimeout)
    assert same_key.key == "delivery:1"
    assert other_key == "delivery:2" and other_error is None


def test_lock_manager_forgets_keys_once_released():
    locks = LockManager(default_timeout=0.05)

    with locks.lock("delivery:1"):
        with locks.lock("order:1"):
            assert sorted(locks.active_keys()) == ["delivery:1", "order:1"]
        assert locks.active_keys() == ["delivery:1"]

    assert locks.active_keys() == []


def test_lock_manager_forgets_a_key_after_a_timed_out_wait():
    locks = LockManager(default_timeout=0.05)

    def take():
        with locks.lock("delivery:1"):
            pass

    with locks.lock("delivery:1"):
        _, error = run_in_thread(take)
        assert isinstance(error, LockTimeout)
        assert locks.active_keys() == ["delivery:1"]

    assert locks.active_keys() == []

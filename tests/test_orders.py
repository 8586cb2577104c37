import re
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from orders.checkout import ItemRequest, OrderValidationError, build_order, next_order_number
from orders.history import OrderHistory
from orders.models import ItemOption, OrderItem, OrderStatus, PaymentStatus
from orders.pricing import compute_totals, split_delivery_fee, to_money


def test_totals_round_tax_half_up_to_cents():
    items = [OrderItem("burger", quantity=2, unit_price=Decimal("12.30"))]

    totals = compute_totals(items, delivery_fee="3.00", tax_rate="0.08")

    assert totals.subtotal == Decimal("24.60")
    assert totals.tax == Decimal("1.97")  # 1.968
    assert totals.total == Decimal("29.57")


def test_totals_include_tip_and_option_surcharges():
    items = [
        OrderItem(
            "burger",
            quantity=2,
            unit_price=Decimal("10.00"),
            variants=(ItemOption("large", Decimal("1.50")),),
            addons=(ItemOption("cheese", Decimal("0.75")),),
        ),
        OrderItem("fries", quantity=1, unit_price=Decimal("3.50")),
    ]

    totals = compute_totals(items, delivery_fee=Decimal("2.00"), tax_rate=Decimal("0.10"), tip=5)

    assert totals.subtotal == Decimal("28.00")
    assert totals.tax == Decimal("2.80")
    assert totals.tip == Decimal("5.00")
    assert totals.total == Decimal("37.80")


def test_negative_fee_or_tip_is_rejected():
    items = [OrderItem("fries", quantity=1, unit_price=Decimal("3.50"))]
    with pytest.raises(ValueError):
        compute_totals(items, delivery_fee=-1, tax_rate=0)
    with pytest.raises(ValueError):
        compute_totals(items, delivery_fee=0, tax_rate=0, tip=-2)


def test_to_money_keeps_float_inputs_exact():
    assert to_money(0.1) == Decimal("0.10")
    assert to_money("2.675") == Decimal("2.68")


def test_split_delivery_fee_driver_gets_eighty_percent():
    assert split_delivery_fee(Decimal("3.00"), Decimal("0.80")) == (Decimal("2.40"), Decimal("0.60"))


def test_split_delivery_fee_parts_always_add_up():
    driver, platform = split_delivery_fee(Decimal("2.99"), Decimal("0.80"))
    assert driver == Decimal("2.39")
    assert driver + platform == Decimal("2.99")


def test_build_order_prices_from_the_catalog(catalog):
    now = datetime(2024, 5, 1, 12, 0)

    order = build_order(
        catalog,
        customer_id="cust-1",
        restaurant_id="rest-1",
        items=[ItemRequest("burger", quantity=2, special_instructions="no onions")],
        tax_rate=Decimal("0.08"),
        now=now,
    )

    assert order.status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.PENDING
    assert order.delivery_driver_id is None
    assert order.total == Decimal("29.57")
    assert order.items[0].unit_price == Decimal("12.30")
    assert order.items[0].special_instructions == "no onions"
    assert order.estimated_delivery_time == now + timedelta(minutes=30)
    assert order.created_at == now


def test_build_order_prices_options_from_the_catalog(catalog):
    order = build_order(
        catalog,
        customer_id="cust-1",
        restaurant_id="rest-1",
        items=[ItemRequest("burger", quantity=2, variants=["large"], addons=["cheese"])],
        tax_rate=Decimal("0.10"),
    )

    item = order.items[0]
    assert item.variants == (ItemOption("large", Decimal("1.50")),)
    assert item.addons == (ItemOption("cheese", Decimal("0.75")),)
    assert order.totals.subtotal == Decimal("29.10")
    assert order.totals.tax == Decimal("2.91")
    assert order.total == Decimal("35.01")


def test_build_order_rejects_options_the_menu_does_not_offer(catalog):
    with pytest.raises(OrderValidationError, match="Option free lunch is not offered for Burger"):
        build_order(
            catalog,
            customer_id="cust-1",
            restaurant_id="rest-1",
            items=[ItemRequest("burger", addons=["free lunch"])],
            tax_rate=Decimal("0.08"),
        )


def test_negative_subtotal_is_rejected():
    items = [
        OrderItem(
            "burger",
            quantity=1,
            unit_price=Decimal("12.30"),
            addons=(ItemOption("free lunch", Decimal("-100.00")),),
        )
    ]

    with pytest.raises(ValueError, match="subtotal must be >= 0"):
        compute_totals(items, delivery_fee="3.00", tax_rate="0.08")


def test_order_numbers_are_unique_and_formatted():
    first = next_order_number(1700000000000)
    second = next_order_number(1700000000000)

    assert re.fullmatch(r"ORD-1700000000000-\d{4}", first)
    assert first != second


@pytest.mark.parametrize(
    "items, message",
    [
        ([ItemRequest("missing")], "Menu item missing not found"),
        ([ItemRequest("pizza")], "is not sold by restaurant rest-1"),
        ([ItemRequest("soup")], "Soup of the day is not available"),
        ([ItemRequest("burger", quantity=0)], "must be at least 1"),
        ([], "at least one item"),
    ],
)
def test_build_order_rejects_invalid_carts(catalog, items, message):
    with pytest.raises(OrderValidationError, match=message):
        build_order(catalog, customer_id="cust-1", restaurant_id="rest-1", items=items, tax_rate=Decimal("0.08"))


def test_build_order_rejects_unknown_restaurant(catalog):
    with pytest.raises(OrderValidationError, match="Restaurant nowhere not found"):
        build_order(catalog, customer_id="cust-1", restaurant_id="nowhere", items=[ItemRequest("burger")], tax_rate=0)


def test_history_keeps_only_the_most_recent_orders(make_order):
    history = OrderHistory(limit=3)
    orders = [make_order() for _ in range(5)]

    for order in orders:
        history.record(order)

    recent = history.recent("cust-1")
    assert [entry.order_id for entry in recent] == [order.id for order in orders[2:]]
    assert recent[0].menu_item_ids == ("burger",)


def test_history_is_per_customer(make_order):
    history = OrderHistory()
    history.record(make_order(customer_id="alice"))

    assert len(history.recent("alice")) == 1
    assert history.recent("bob") == []

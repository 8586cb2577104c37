import pytest
from dataclasses import replace
from decimal import Decimal

from dispatch import Dispatcher, DispatchPolicy, DispatchStore
from drivers import GeoIndex
from notifications import InMemoryTransport, NotificationRouter
from orders import InMemoryCatalog, ItemRequest, MenuItemInfo, RestaurantInfo, build_order
from payments import PaymentResult, PaymentService

# Example: Lower Manhattan. 0.01 degrees of latitude is roughly 1.1 km.
CITY_CENTRE = (40.7128, -74.0060)
MIDTOWN = (40.7580, -73.9855)  # ~5.3 km north of CITY_CENTRE


@pytest.fixture
def city_centre():
    return CITY_CENTRE


@pytest.fixture
def policy():
    # Route notifications inline so tests can assert on them immediately
    return DispatchPolicy(notification_workers=0, lock_timeout_seconds=1.0)


@pytest.fixture
def catalog():
    catalog = InMemoryCatalog()
    catalog.add_restaurant(
        RestaurantInfo(
            id="rest-1",
            owner_id="owner-1",
            location=CITY_CENTRE,
            delivery_fee=Decimal("3.00"),
            name="Burger Place",
        )
    )
    catalog.add_restaurant(
        RestaurantInfo(
            id="rest-2",
            owner_id="owner-2",
            location=MIDTOWN,
            delivery_fee=Decimal("2.50"),
            name="Pizza Corner",
        )
    )
    catalog.add_menu_item(
        MenuItemInfo(
            "burger",
            "rest-1",
            "Burger",
            Decimal("12.30"),
            options={"large": Decimal("1.50"), "cheese": Decimal("0.75")},
        )
    )
    catalog.add_menu_item(MenuItemInfo("fries", "rest-1", "Fries", Decimal("3.50")))
    catalog.add_menu_item(MenuItemInfo("soup", "rest-1", "Soup of the day", Decimal("6.00"), is_available=False))
    catalog.add_menu_item(MenuItemInfo("pizza", "rest-2", "Pizza", Decimal("15.00")))
    return catalog


@pytest.fixture
def transport():
    return InMemoryTransport()


@pytest.fixture
def router(transport):
    return NotificationRouter(transport)


@pytest.fixture
def store(policy):
    return DispatchStore(lock_timeout_seconds=policy.lock_timeout_seconds)


@pytest.fixture
def geo_index():
    return GeoIndex()


@pytest.fixture
def dispatcher(catalog, transport, store, geo_index, policy):
    dispatcher = Dispatcher(catalog, transport, store=store, geo_index=geo_index, policy=policy)
    yield dispatcher
    dispatcher.close()


@pytest.fixture
def make_order(catalog, policy):
    """Builds (but does not store) a priced order: two burgers from rest-1 unless told otherwise."""

    def _make(customer_id="cust-1", restaurant_id="rest-1", items=None, **changes):
        order = build_order(
            catalog,
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            items=items or [ItemRequest("burger", quantity=2)],
            tax_rate=policy.tax_rate,
        )
        return replace(order, **changes) if changes else order

    return _make


@pytest.fixture
def add_driver(geo_index):
    """Puts a driver online at a lat/lon offset (in degrees) from the city centre."""

    def _add(driver_id, d_lat=0.0, d_lon=0.0):
        return geo_index.update_location(driver_id, CITY_CENTRE[0] + d_lat, CITY_CENTRE[1] + d_lon)

    return _add


class FakeGateway:
    """Payment collaborator double. Records every call."""

    def __init__(self, capture_ok=True, refund_ok=True):
        self.capture_ok = capture_ok
        self.refund_ok = refund_ok
        self.captured = []
        self.refunded = []

    def capture(self, order_id, amount):
        self.captured.append((order_id, amount))
        if self.capture_ok:
            return PaymentResult(success=True, reference=f"cap-{order_id}")
        return PaymentResult(success=False, error="card declined")

    def refund(self, order_id, amount):
        self.refunded.append((order_id, amount))
        if self.refund_ok:
            return PaymentResult(success=True, reference=f"ref-{order_id}")
        return PaymentResult(success=False, error="gateway down")


@pytest.fixture
def make_gateway():
    return FakeGateway


@pytest.fixture
def gateway(make_gateway):
    return make_gateway()


@pytest.fixture
def payments(store, gateway):
    return PaymentService(store, gateway)

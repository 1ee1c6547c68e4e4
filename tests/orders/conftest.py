import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from orders.collaborators import get_cart_store, get_product_catalog, get_user_directory, reset_collaborators
from orders.orchestrator import OrderOrchestrator, OrderRequest
from orders.payment import reset_gateway, set_gateway
from orders.payment.fake_adapter import FakeGateway

SHIPPING = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "phone": "555-0100",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "Nowhere",
    "postal_code": "00000",
    "country": "Freedonia",
}


@pytest.fixture(scope="session")
def orders_bed():
    from orders.domain import orders

    bed = DomainFixture(orders)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(orders_bed):
    with orders_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _collaborators():
    reset_collaborators()
    yield
    reset_collaborators()


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture()
def users():
    directory = get_user_directory()
    directory.add_user("user-1", email="ada@example.com")
    directory.add_user("user-2", email="grace@example.com")
    directory.add_user("user-inactive", is_active=False)
    return directory


@pytest.fixture()
def catalog():
    products = get_product_catalog()
    products.add_product("prod-a", "Product A", "10.00", stock_quantity=5, sku="SKU-A")
    products.add_product("prod-b", "Product B", "25.00", stock_quantity=0, sku="SKU-B")
    products.add_product("prod-c", "Product C", "60.00", stock_quantity=100, sku="SKU-C")
    products.add_product("prod-off", "Retired Product", "5.00", stock_quantity=10, is_active=False)
    return products


@pytest.fixture()
def cart():
    return get_cart_store()


@pytest.fixture()
def orchestrator():
    return OrderOrchestrator()


@pytest.fixture()
def place_order(orchestrator, users, catalog):
    """Create an order for user-1 from explicit lines (default: 2 x prod-a)."""

    def _place(lines=None, user_id="user-1", shipping=None, **kwargs):
        request = OrderRequest(
            shipping_details=shipping or SHIPPING,
            lines=lines if lines is not None else [{"product_id": "prod-a", "quantity": 2}],
            **kwargs,
        )
        return orchestrator.create_order(user_id, request)

    return _place


@pytest.fixture()
def shipping():
    return dict(SHIPPING)

import pytest
from protean.integrations.pytest import DomainFixture
from shared.publisher.memory_adapter import InMemoryEventPublisher

ADDRESS = {"line1": "1 Main St", "city": "Springfield", "postal_code": "62701", "country": "US"}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session")
def inventory_bed():
    from inventory.domain import inventory

    bed = DomainFixture(inventory)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed, inventory_bed):
    with ordering_bed.domain_context(), inventory_bed.domain_context():
        yield


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def services(publisher):
    from checkout.container import build_services
    from inventory.domain import inventory
    from ordering.domain import ordering

    return build_services(ordering, inventory, publisher=publisher)


@pytest.fixture
def place_order(services):
    """Create an order for ``{product_id: quantity}``; the coordinator reserves it."""

    def _place(quantities, customer_id="cust-001"):
        items = [
            {"product_id": product_id, "sku": f"SKU-{product_id}", "quantity": quantity, "unit_price": "10.00"}
            for product_id, quantity in quantities.items()
        ]
        return services.lifecycle.create_order(customer_id=customer_id, items=items, shipping_address=ADDRESS)

    return _place


@pytest.fixture
def stock(services):
    def _stock(product_id, quantity):
        services.engine.get_or_create_item(product_id, f"SKU-{product_id}", initial_quantity=quantity)

    return _stock

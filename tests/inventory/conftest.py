import pytest
from protean.integrations.pytest import DomainFixture
from shared.concurrency import LockRegistry
from shared.publisher.memory_adapter import InMemoryEventPublisher


@pytest.fixture(scope="session")
def inventory_bed():
    from inventory.domain import inventory

    bed = DomainFixture(inventory)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(inventory_bed):
    with inventory_bed.domain_context():
        yield


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def engine(publisher):
    """ReservationEngine with its own lock registry, publishing to ``publisher``."""
    from inventory.domain import inventory
    from inventory.stock.engine import ReservationEngine

    return ReservationEngine(inventory, publisher=publisher, locks=LockRegistry())

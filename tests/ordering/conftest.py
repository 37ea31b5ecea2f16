import pytest
from protean.integrations.pytest import DomainFixture
from shared.concurrency import LockRegistry
from shared.publisher.memory_adapter import InMemoryEventPublisher


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def lifecycle(publisher):
    """OrderLifecycle with its own lock registry, publishing to ``publisher``."""
    from ordering.domain import ordering
    from ordering.order.lifecycle import OrderLifecycle

    return OrderLifecycle(ordering, publisher=publisher, locks=LockRegistry())

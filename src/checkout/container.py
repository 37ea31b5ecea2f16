"""Wires the two domains into the running checkout services.

The Coordinator consumes a handful of events that, in a single-process
deployment, come from this process's own publisher (``order.created``)
or from the HTTP webhook. ``build_services`` subscribes it to the
in-memory publisher so ``create_order`` starts the saga directly.
"""

from dataclasses import dataclass

from protean.domain import Domain
from shared.concurrency import get_lock_registry
from shared.publisher import get_publisher
from shared.publisher.memory_adapter import InMemoryEventPublisher
from shared.publisher.port import EventPublisher

from checkout.coordinator import Coordinator
from checkout.sweeper import ExpirySweeper
from inventory.stock.engine import ReservationEngine
from ordering.order.lifecycle import OrderLifecycle

# Events this process raises itself and also consumes.
SELF_CONSUMED_EVENTS = ("order.created",)


@dataclass
class Services:
    engine: ReservationEngine
    lifecycle: OrderLifecycle
    coordinator: Coordinator
    sweeper: ExpirySweeper
    publisher: EventPublisher


def build_services(
    ordering: Domain,
    inventory: Domain,
    publisher: EventPublisher | None = None,
    subscribe_coordinator: bool = True,
) -> Services:
    publisher = publisher or get_publisher(ordering)
    locks = get_lock_registry()

    engine = ReservationEngine(inventory, publisher=publisher, locks=locks)
    lifecycle = OrderLifecycle(ordering, publisher=publisher, locks=locks)
    coordinator = Coordinator(lifecycle, engine)
    sweeper = ExpirySweeper(lifecycle, engine)

    if subscribe_coordinator and isinstance(publisher, InMemoryEventPublisher):
        for name in SELF_CONSUMED_EVENTS:
            publisher.subscribe(name, coordinator.handle)

    return Services(
        engine=engine,
        lifecycle=lifecycle,
        coordinator=coordinator,
        sweeper=sweeper,
        publisher=publisher,
    )

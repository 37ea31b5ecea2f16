"""Background runner for Stockguard.

Starts, in one process:
- a Protean Engine per domain (outbox processing and stream subscriptions)
- the expiry sweep, as an APScheduler interval job
- the inbound event consumer, feeding broker messages to the coordinator

Usage:
    python src/server.py                      # Everything
    python src/server.py --domain inventory   # Only the inventory engine
    python src/server.py --no-sweeper --no-consumer
"""

import argparse
import asyncio

import structlog
from protean.server.engine import Engine
from shared.logging import configure_logging
from shared.publisher.broker_adapter import DEFAULT_STREAM

logger = structlog.get_logger(__name__)

DOMAIN_NAMES = ["ordering", "inventory"]
IDLE_POLL_SECONDS = 0.5


def _get_domain(name):
    """Import and initialize a domain by name."""
    if name == "ordering":
        from ordering.domain import ordering

        ordering.init()
        return ordering
    elif name == "inventory":
        from inventory.domain import inventory

        inventory.init()
        return inventory
    else:
        raise ValueError(f"Unknown domain: {name}")


async def consume(consumer):
    """Poll the inbound stream forever, backing off while it is empty."""
    while True:
        handled = await asyncio.to_thread(consumer.poll_once)
        if not handled:
            await asyncio.sleep(IDLE_POLL_SECONDS)


async def run(domain_names, with_sweeper=True, with_consumer=True, stream=DEFAULT_STREAM):
    domains = {name: _get_domain(name) for name in domain_names}
    tasks = [Engine(domain).run() for domain in domains.values()]

    scheduler = None
    if with_sweeper or with_consumer:
        from checkout.consumer import BrokerEventConsumer
        from checkout.container import build_services

        ordering = domains.get("ordering") or _get_domain("ordering")
        inventory = domains.get("inventory") or _get_domain("inventory")
        services = build_services(ordering, inventory, subscribe_coordinator=False)

        if with_sweeper:
            from checkout.scheduler import init_scheduler

            scheduler = init_scheduler(services.sweeper)
            scheduler.start()
        if with_consumer:
            consumer = BrokerEventConsumer(services.coordinator, ordering.brokers["default"], stream=stream)
            tasks.append(consume(consumer))

    logger.info("Server starting", domains=list(domains), sweeper=with_sweeper, consumer=with_consumer)
    try:
        await asyncio.gather(*tasks)
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


def main():
    parser = argparse.ArgumentParser(description="Stockguard background runner")
    parser.add_argument(
        "--domain",
        choices=DOMAIN_NAMES,
        help="Run a single domain engine (default: run all)",
    )
    parser.add_argument("--no-sweeper", action="store_true", help="Do not run the expiry sweeper")
    parser.add_argument("--no-consumer", action="store_true", help="Do not consume inbound events")
    parser.add_argument("--stream", default=DEFAULT_STREAM, help="Inbound event stream")
    args = parser.parse_args()

    configure_logging(service="worker")
    domain_names = [args.domain] if args.domain else DOMAIN_NAMES

    asyncio.run(
        run(
            domain_names,
            with_sweeper=not args.no_sweeper,
            with_consumer=not args.no_consumer,
            stream=args.stream,
        )
    )


if __name__ == "__main__":
    main()

"""Outbound event publishing — pluggable adapters behind one port."""

import os

import structlog

from shared.publisher.port import EventPublisher

logger = structlog.get_logger(__name__)

_publisher_instance = None


def get_publisher(domain=None) -> EventPublisher:
    """Return the configured publisher adapter (singleton).

    Uses the in-memory adapter by default. Set EVENT_PUBLISHER=broker to
    publish through ``domain``'s default broker.
    """
    global _publisher_instance
    if _publisher_instance is None:
        adapter = os.environ.get("EVENT_PUBLISHER", "memory")
        if adapter == "memory":
            from shared.publisher.memory_adapter import InMemoryEventPublisher

            _publisher_instance = InMemoryEventPublisher()
        elif adapter == "broker":
            if domain is None:
                raise ValueError("The broker publisher needs a domain to resolve its broker")
            from shared.publisher.broker_adapter import BrokerEventPublisher

            _publisher_instance = BrokerEventPublisher(domain)
        else:
            raise ValueError(f"Unknown event publisher: {adapter}")
    return _publisher_instance


def reset_publisher():
    """Reset the publisher singleton (useful for testing)."""
    global _publisher_instance
    _publisher_instance = None


def publish_safely(publisher: EventPublisher | None, name: str, payload: dict) -> bool:
    """Publish after commit. Failures are logged, never raised."""
    if publisher is None:
        return False
    try:
        publisher.publish(name, payload)
    except Exception as exc:
        logger.error("Event publish failed", event_type=name, error=str(exc), payload=payload)
        return False
    return True

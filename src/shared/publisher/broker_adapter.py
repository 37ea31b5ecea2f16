"""Broker publisher — writes events to a stream on a Protean broker.

With the production config the default broker is Redis Streams, so the
messages land on a stream other services consume with their own groups.
"""

from datetime import UTC, datetime
from uuid import uuid4

from protean.domain import Domain

from shared.publisher.port import EventPublisher

DEFAULT_STREAM = "checkout::events"


class BrokerEventPublisher(EventPublisher):
    def __init__(self, domain: Domain, stream: str = DEFAULT_STREAM, broker_name: str = "default"):
        self.domain = domain
        self.stream = stream
        self.broker_name = broker_name

    def publish(self, name: str, payload: dict) -> None:
        message = {
            "id": str(uuid4()),
            "type": name,
            "payload": payload,
            "published_at": datetime.now(UTC).isoformat(),
        }
        with self.domain.domain_context():
            self.domain.brokers[self.broker_name].publish(self.stream, message)

"""Inbound event consumer — feeds broker messages to the Coordinator.

Messages carry ``{"type": ..., "payload": {...}}``, the same envelope the
broker publisher writes. Domain rule violations, malformed payloads and
unknown orders will not succeed on redelivery, so they are logged and
acknowledged. Store contention (TransientFailure) and unexpected errors
are nacked: the broker redelivers the message and, once its retry budget
is spent, moves it to the dead-letter queue.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.concurrency import TransientFailure
from shared.publisher.broker_adapter import DEFAULT_STREAM

from checkout.coordinator import Coordinator

logger = structlog.get_logger(__name__)

DEFAULT_CONSUMER_GROUP = "checkout-coordinator"


class BrokerEventConsumer:
    def __init__(
        self,
        coordinator: Coordinator,
        broker,
        stream: str = DEFAULT_STREAM,
        consumer_group: str = DEFAULT_CONSUMER_GROUP,
    ):
        self.coordinator = coordinator
        self.broker = broker
        self.stream = stream
        self.consumer_group = consumer_group

    def poll_once(self) -> bool:
        """Handle at most one message. Returns False when the stream is empty."""
        entry = self.broker.get_next(self.stream, self.consumer_group)
        if entry is None:
            return False

        identifier, message = entry
        event_type = message.get("type")
        payload = message.get("payload")
        if payload is None:
            payload = {}

        try:
            self.coordinator.handle(event_type, payload)
        except TransientFailure as exc:
            logger.warning("Inbound event deferred", message_id=identifier, event_type=event_type, error=str(exc))
            self.broker.nack(self.stream, identifier, self.consumer_group)
            return True
        except (ValidationError, ObjectNotFoundError) as exc:
            logger.warning(
                "Inbound event rejected",
                message_id=identifier,
                event_type=event_type,
                error=str(exc),
            )
        except Exception:
            logger.exception("Inbound event handler crashed", message_id=identifier, event_type=event_type)
            self.broker.nack(self.stream, identifier, self.consumer_group)
            return True

        self.broker.ack(self.stream, identifier, self.consumer_group)
        return True

    def drain(self, limit: int = 100) -> int:
        """Poll until the stream is empty or ``limit`` messages were handled."""
        handled = 0
        while handled < limit and self.poll_once():
            handled += 1
        return handled

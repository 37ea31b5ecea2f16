"""Event publisher port — where committed state changes are announced.

Publication happens after the store commit. Adapters may lose a message
(at-most-once), but they must never be able to undo a commit, so callers
go through ``publish_safely``.
"""

from abc import ABC, abstractmethod


class EventPublisher(ABC):
    """Abstract interface for outbound event adapters."""

    @abstractmethod
    def publish(self, name: str, payload: dict) -> None:
        """Publish one event, e.g. ``publish("order.confirmed", {...})``."""
        ...

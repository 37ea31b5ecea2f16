"""In-memory publisher — records every message and fans out to local subscribers.

Used by tests and by the single-process app, where the coordinator
subscribes to the events it consumes.
"""

from collections import defaultdict
from datetime import UTC, datetime

from shared.publisher.port import EventPublisher


class InMemoryEventPublisher(EventPublisher):
    def __init__(self):
        self.messages: list[dict] = []
        self._subscribers = defaultdict(list)
        self.should_fail = False

    def configure(self, should_fail: bool = False):
        """Make every publish raise, to exercise publish-failure handling."""
        self.should_fail = should_fail

    def subscribe(self, name: str, handler) -> None:
        self._subscribers[name].append(handler)

    def publish(self, name: str, payload: dict) -> None:
        if self.should_fail:
            raise ConnectionError(f"Publisher unavailable, dropped {name}")

        self.messages.append({"type": name, "payload": payload, "published_at": datetime.now(UTC)})
        for handler in list(self._subscribers.get(name, [])):
            handler(name, payload)

    def published(self, name: str | None = None) -> list[dict]:
        """Payloads published so far, optionally only those named ``name``."""
        return [m["payload"] for m in self.messages if name is None or m["type"] == name]

    def names(self) -> list[str]:
        return [m["type"] for m in self.messages]

    def clear(self) -> None:
        self.messages.clear()

"""Per-aggregate serialization and bounded retry for store contention.

Every write to an Inventory Item or an Order goes through ``serialized()``:
the aggregate's lock is held for the whole load-mutate-commit cycle, and
version conflicts raised by the event store are retried with exponential
backoff before surfacing as ``TransientFailure``.
"""

import threading
import time
from contextlib import contextmanager

import structlog
from protean.exceptions import ExpectedVersionError

logger = structlog.get_logger(__name__)

RETRYABLE_ERRORS = (ExpectedVersionError,)


class TransientFailure(Exception):
    """Store contention persisted past the retry budget."""

    def __init__(self, key, attempts, last_error=None):
        self.key = key
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up on {key} after {attempts} attempts: {last_error}")


class LockRegistry:
    """Hands out one re-entrant lock per aggregate key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str):
        lock = self.lock_for(key)
        with lock:
            yield


_registry = LockRegistry()


def get_lock_registry() -> LockRegistry:
    return _registry


def with_retry(operation, *, key, attempts=3, backoff=0.05, retry_on=RETRYABLE_ERRORS):
    """Run ``operation()`` retrying ``retry_on`` errors with exponential backoff."""
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as exc:
            last_error = exc
            logger.warning(
                "Store contention, retrying",
                key=key,
                attempt=attempt,
                max_attempts=attempts,
                error=str(exc),
            )
            if attempt < attempts:
                time.sleep(backoff * (2 ** (attempt - 1)))

    logger.error("Retries exhausted", key=key, attempts=attempts, error=str(last_error))
    raise TransientFailure(key, attempts, last_error)


def serialized(operation, *, key, attempts=3, backoff=0.05, registry=None):
    """Hold the lock for ``key`` and run ``operation`` with bounded retry."""
    registry = registry or _registry
    with registry.hold(key):
        return with_retry(operation, key=key, attempts=attempts, backoff=backoff)

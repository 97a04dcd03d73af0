"""Per-key pessimistic locks.

Used to serialize mutations of one product's stock, or of one order's
payment records, across concurrent requests handled by the same process.
Keys are always acquired in sorted order so two callers holding overlapping
key sets cannot deadlock; a lock that cannot be taken within `timeout`
seconds raises `ConcurrentModification` instead of blocking forever.
"""

import threading
from collections.abc import Iterable
from contextlib import contextmanager

import structlog

from commerce.errors import ConcurrentModification

logger = structlog.get_logger(__name__)


class KeyedLocks:
    def __init__(self, name: str, timeout: float = 5.0) -> None:
        self.name = name
        self.timeout = timeout
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, keys: Iterable):
        """Hold the locks for every key in `keys` for the duration of the block.

        Re-entrant: a thread already holding a key can hold it again, so
        nested operations on the same product do not block themselves.
        """
        ordered = sorted({str(key) for key in keys})
        acquired = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                if not lock.acquire(timeout=self.timeout):
                    logger.warning("Lock acquisition timed out", registry=self.name, key=key)
                    raise ConcurrentModification(f"{self.name} '{key}' is locked by another request")
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()


# Serializes payment intent, verification and refund per order
payment_locks = KeyedLocks("order payment")

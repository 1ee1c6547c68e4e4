"""Per-key mutual exclusion for read-modify-write sequences.

``KeyedLocks`` hands out one re-entrant lock per key (an order id, a product
id) so that two writers touching the same key are serialized while writers on
different keys proceed in parallel. Multiple keys are always acquired in sorted
order, so two callers locking overlapping key sets cannot deadlock.
"""

import threading
from contextlib import contextmanager


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, list] = {}  # key -> [RLock, holders]

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._entries[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._entries[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, *keys):
        """Hold the locks for every key in ``keys`` for the duration of the block."""
        ordered = sorted({str(k) for k in keys if k is not None})
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def active_keys(self) -> set[str]:
        with self._guard:
            return set(self._entries)

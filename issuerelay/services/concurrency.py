"""In-process serialization of events touching the same issue"""

import threading
from collections import OrderedDict
from contextlib import contextmanager
from typing import Dict, Hashable, Optional


class KeyedLocks:
    """One mutex per key, created on demand and dropped when nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Optional[Hashable]):
        if key is None:
            yield
            return
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class DeliveryLog:
    """Bounded memory of delivery ids that were already answered with 202."""

    def __init__(self, capacity: int = 2048):
        self.capacity = capacity
        self._seen: "OrderedDict[str, None]" = OrderedDict()
        self._guard = threading.Lock()

    def seen(self, delivery_id: Optional[str]) -> bool:
        if not delivery_id:
            return False
        with self._guard:
            return delivery_id in self._seen

    def record(self, delivery_id: Optional[str]) -> None:
        if not delivery_id:
            return
        with self._guard:
            self._seen[delivery_id] = None
            self._seen.move_to_end(delivery_id)
            while len(self._seen) > self.capacity:
                self._seen.popitem(last=False)

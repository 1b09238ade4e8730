"""Process-wide keyed locks serializing ledger and simulation writes.

Lock order is always user, then market. The simulation thread only ever holds
one market lock at a time, so the two can never deadlock.
"""

import threading
from contextlib import contextmanager


class KeyedLocks:
    """Lazily created re-entrant lock per key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def get(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


user_locks = KeyedLocks()
market_locks = KeyedLocks()


@contextmanager
def user_critical_section(user_id: str):
    with user_locks.get(user_id):
        yield


@contextmanager
def trade_critical_section(user_id: str, market_id: str):
    with user_locks.get(user_id):
        with market_locks.get(market_id):
            yield


@contextmanager
def market_critical_section(market_id: str):
    with market_locks.get(market_id):
        yield

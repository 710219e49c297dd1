"""In-process mutual exclusion keyed by natural identity.

Each mutating operation holds the locks for the identities it touches
(service day, ticket, window, user) for the whole read-check-write-commit
sequence. Database row locks (``SELECT ... FOR UPDATE``) and unique indexes
back this up when several processes share one PostgreSQL database.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from threading import Lock, RLock

QUEUE_KEY = "queue"
ROLLOVER_KEY = "rollover"


def day_key(service_day: object) -> str:
    return f"day:{service_day}"


def ticket_key(ticket_id: str) -> str:
    return f"ticket:{ticket_id}"


def window_key(window_number: int) -> str:
    return f"window:{window_number}"


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


class KeyedLocks:
    """Registry of re-entrant locks created on first use."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, RLock] = {}

    def _get(self, key: str) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            return lock

    def _acquire(self, key: str) -> RLock:
        # The lock may be evicted between lookup and acquire; retry on the new one.
        while True:
            lock = self._get(key)
            lock.acquire()
            with self._guard:
                if self._locks.get(key) is lock:
                    return lock
            lock.release()

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire every key, in sorted order so callers cannot deadlock."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.callback(self._acquire(key).release)
            yield

    def evict(self, predicate: Callable[[str], bool]) -> int:
        """Forget idle locks whose key matches ``predicate``.

        Locks currently held by another thread are kept.
        """
        removed = 0
        with self._guard:
            for key in [key for key in self._locks if predicate(key)]:
                lock = self._locks[key]
                if lock.acquire(blocking=False):
                    try:
                        del self._locks[key]
                        removed += 1
                    finally:
                        lock.release()
        return removed

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def keys(self) -> list[str]:
        with self._guard:
            return list(self._locks)


_LOCKS = KeyedLocks()


def get_locks() -> KeyedLocks:
    """Return the process-wide lock registry."""
    return _LOCKS

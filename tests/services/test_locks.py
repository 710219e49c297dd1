"""Tests for the keyed lock registry."""

from __future__ import annotations

import threading
import time

from turnline.services.locks import KeyedLocks, get_locks
from turnline.services.notifications import NotificationHub
from turnline.services.rollover import RolloverCoordinator
from turnline.services.sequence import SequenceAllocator
from turnline.services.tickets import TicketStateMachine
from turnline.services.windows import WindowOwnershipManager

from tests.conftest import ManualClock


def test_hold_excludes_other_threads_on_same_key() -> None:
    locks = KeyedLocks()
    inside = threading.Event()
    release = threading.Event()
    order: list[str] = []

    def _holder() -> None:
        with locks.hold("window:1"):
            inside.set()
            release.wait(timeout=2)
            order.append("holder")

    def _waiter() -> None:
        inside.wait(timeout=2)
        with locks.hold("window:1", "ticket:x"):
            order.append("waiter")

    threads = [threading.Thread(target=_holder), threading.Thread(target=_waiter)]
    for thread in threads:
        thread.start()
    inside.wait(timeout=2)
    time.sleep(0.05)
    release.set()
    for thread in threads:
        thread.join(timeout=2)

    assert order == ["holder", "waiter"]


def test_hold_is_reentrant_and_tolerates_duplicates() -> None:
    locks = KeyedLocks()
    with locks.hold("queue", "queue"):
        with locks.hold("queue"):
            pass
    assert locks.keys() == ["queue"]


def test_evict_skips_locks_held_elsewhere() -> None:
    locks = KeyedLocks()
    with locks.hold("ticket:a", "ticket:b"):
        pass
    held = threading.Event()
    done = threading.Event()

    def _hold_b() -> None:
        with locks.hold("ticket:b"):
            held.set()
            done.wait(timeout=2)

    thread = threading.Thread(target=_hold_b)
    thread.start()
    held.wait(timeout=2)

    removed = locks.evict(lambda key: key.startswith("ticket:"))
    done.set()
    thread.join(timeout=2)

    assert removed == 1
    assert locks.keys() == ["ticket:b"]


def test_services_use_an_injected_empty_registry() -> None:
    locks = KeyedLocks()
    clock = ManualClock()
    hub = NotificationHub()

    services = [
        SequenceAllocator(locks),
        WindowOwnershipManager(clock, hub, locks),
        TicketStateMachine(clock, hub, locks),
        RolloverCoordinator(clock, hub, locks),
    ]

    assert len(locks) == 0
    for service in services:
        assert service.locks is locks
        assert service.locks is not get_locks()
    assert services[2].allocator.locks is locks
    assert services[3].ownership.locks is locks


def test_hold_retries_when_lock_was_evicted_before_acquire(mocker) -> None:
    locks = KeyedLocks()
    stale = locks._get("ticket:a")
    locks.evict(lambda key: True)
    lookup = locks._get
    calls: list[str] = []

    def _get(key: str):
        calls.append(key)
        # First lookup hands back the lock that eviction already dropped.
        return stale if len(calls) == 1 else lookup(key)

    mocker.patch.object(locks, "_get", side_effect=_get)
    acquired_elsewhere: list[bool] = []

    with locks.hold("ticket:a"):
        current = locks._locks["ticket:a"]

        def _try() -> None:
            acquired_elsewhere.append(current.acquire(blocking=False))

        thread = threading.Thread(target=_try)
        thread.start()
        thread.join(timeout=2)

    assert calls == ["ticket:a", "ticket:a"]
    assert current is not stale
    assert acquired_elsewhere == [False]
    # The stale lock was released after the retry.
    assert stale.acquire(blocking=False)
    stale.release()

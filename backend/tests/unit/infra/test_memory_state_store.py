"""
Unit tests for InMemoryStateStore.

Time is driven by a manual clock, so expiry is exercised without sleeping.
Covered flows:
- set / get / delete semantics and TTL clearing
- lazy purge of expired keys (also invisible to prefix scans)
- increment (plain and with a re-asserted TTL)
- expire / ttl sentinels
- sweep and the background sweeper
- unavailability (lock timeout, closed store)
"""

from __future__ import annotations

import threading
import time

import pytest

from sessionguard.infra.memory.memory_state_store import InMemoryStateStore
from sessionguard.services._shared.ports.state_store import (
    TTL_MISSING,
    TTL_PERSISTENT,
    InvalidStoreArgument,
    StoreUnavailable,
)


def test_get_missing_key_returns_none(memory_store):
    assert memory_store.get("nope") is None


def test_set_then_get_round_trip(memory_store):
    assert memory_store.set("k", "v") is True
    assert memory_store.get("k") == "v"


def test_set_overwrites_and_clears_ttl(memory_store, clock):
    """A plain ``set`` on a key with expiry makes it persistent."""
    memory_store.set_with_ttl("k", "old", 10)
    memory_store.set("k", "new")
    clock.advance(60)
    assert memory_store.get("k") == "new"
    assert memory_store.ttl("k") == TTL_PERSISTENT


def test_set_with_ttl_expires_exactly_at_deadline(memory_store, clock):
    memory_store.set_with_ttl("k", "v", 10)
    clock.advance(9)
    assert memory_store.get("k") == "v"
    clock.advance(1)
    assert memory_store.get("k") is None


@pytest.mark.parametrize("ttl", [0, -5])
def test_set_with_non_positive_ttl_is_rejected(memory_store, ttl):
    with pytest.raises(InvalidStoreArgument):
        memory_store.set_with_ttl("k", "v", ttl)
    assert memory_store.get("k") is None


@pytest.mark.parametrize("key", ["", None, 12])
def test_invalid_keys_are_rejected(memory_store, key):
    with pytest.raises(InvalidStoreArgument):
        memory_store.set(key, "v")


def test_non_string_value_is_rejected(memory_store):
    with pytest.raises(InvalidStoreArgument):
        memory_store.set("k", 1)


def test_delete_reports_whether_key_existed(memory_store):
    memory_store.set("k", "v")
    assert memory_store.delete("k") is True
    assert memory_store.delete("k") is False
    assert memory_store.get("k") is None


def test_delete_of_expired_key_reports_absent(memory_store, clock):
    memory_store.set_with_ttl("k", "v", 1)
    clock.advance(2)
    assert memory_store.delete("k") is False


def test_expired_key_is_purged_on_read_and_hidden_from_scans(memory_store, clock):
    """Reading an expired key removes it; later scans must not list it."""
    memory_store.set_with_ttl("blacklist:a", "true", 5)
    memory_store.set("blacklist:b", "true")
    clock.advance(5)

    assert memory_store.get("blacklist:a") is None
    assert memory_store.keys_with_prefix("blacklist:") == ["blacklist:b"]
    # nothing left for the sweeper: the read already purged it
    assert memory_store.sweep() == 0


def test_prefix_scan_skips_expired_without_reading(memory_store, clock):
    memory_store.set_with_ttl("p:1", "x", 5)
    memory_store.set_with_ttl("p:2", "x", 50)
    memory_store.set("q:1", "x")
    clock.advance(10)
    assert memory_store.keys_with_prefix("p:") == ["p:2"]
    assert memory_store.keys_with_prefix("") == ["p:2", "q:1"]


def test_increment_absent_key_starts_at_one(memory_store):
    assert memory_store.increment("c") == 1
    assert memory_store.increment("c") == 2
    assert memory_store.get("c") == "2"


def test_plain_increment_keeps_existing_expiry(memory_store, clock):
    memory_store.set_with_ttl("c", "3", 10)
    clock.advance(4)
    assert memory_store.increment("c") == 4
    assert memory_store.ttl("c") == 6


def test_increment_with_ttl_reasserts_window(memory_store, clock):
    """Each increment with ``ttl_seconds`` pushes the deadline out again."""
    memory_store.increment("c", ttl_seconds=10)
    clock.advance(8)
    memory_store.increment("c", ttl_seconds=10)
    clock.advance(8)
    assert memory_store.get("c") == "2"
    clock.advance(2)
    assert memory_store.get("c") is None


def test_increment_after_expiry_restarts_from_zero(memory_store, clock):
    memory_store.increment("c", ttl_seconds=5)
    memory_store.increment("c", ttl_seconds=5)
    clock.advance(5)
    assert memory_store.increment("c", ttl_seconds=5) == 1


def test_increment_non_integer_value_is_rejected(memory_store):
    memory_store.set("c", "abc")
    with pytest.raises(InvalidStoreArgument):
        memory_store.increment("c")
    with pytest.raises(InvalidStoreArgument):
        memory_store.increment("c", ttl_seconds=10)
    assert memory_store.get("c") == "abc"
    assert memory_store.ttl("c") == TTL_PERSISTENT


def test_expire_resets_ttl_without_touching_value(memory_store, clock):
    memory_store.set("k", "v")
    assert memory_store.expire("k", 30) is True
    assert memory_store.get("k") == "v"
    assert memory_store.ttl("k") == 30
    clock.advance(30)
    assert memory_store.get("k") is None


def test_expire_on_missing_key_returns_false(memory_store):
    assert memory_store.expire("ghost", 30) is False


def test_ttl_sentinels(memory_store):
    memory_store.set("persistent", "v")
    assert memory_store.ttl("persistent") == TTL_PERSISTENT
    assert memory_store.ttl("missing") == TTL_MISSING


def test_stats_counts_live_keys_by_expiry(memory_store, clock):
    memory_store.set("a", "1")
    memory_store.set_with_ttl("b", "1", 10)
    memory_store.set_with_ttl("c", "1", 1)
    clock.advance(1)

    stats = memory_store.stats()

    assert stats.backend == "memory"
    assert (stats.total, stats.with_expiry, stats.without_expiry) == (2, 1, 1)


def test_sweep_removes_only_expired_entries(memory_store, clock):
    memory_store.set_with_ttl("a", "1", 1)
    memory_store.set_with_ttl("b", "1", 2)
    memory_store.set("c", "1")
    clock.advance(1)

    assert memory_store.sweep() == 1
    assert memory_store.keys_with_prefix("") == ["b", "c"]


def test_background_sweeper_purges_expired_entries(memory_store, clock):
    memory_store.set_with_ttl("a", "1", 1)
    clock.advance(5)

    memory_store.start_sweeper(0.01)
    assert memory_store.sweeper_running

    deadline = time.monotonic() + 2.0
    while "a" in memory_store._data and time.monotonic() < deadline:
        time.sleep(0.01)
    assert "a" not in memory_store._data


def test_start_sweeper_twice_keeps_one_thread(memory_store):
    memory_store.start_sweeper(30)
    first = memory_store._sweeper
    memory_store.start_sweeper(30)
    assert memory_store._sweeper is first
    sweepers = [t for t in threading.enumerate() if t.name == "state-store-sweeper"]
    assert first in sweepers


def test_start_sweeper_rejects_non_positive_interval(memory_store):
    with pytest.raises(InvalidStoreArgument):
        memory_store.start_sweeper(0)


def test_close_stops_sweeper_and_makes_store_unavailable(clock):
    store = InMemoryStateStore(timeout=0.05, clock=clock)
    store.start_sweeper(30)
    store.close()

    assert not store.sweeper_running
    assert store.ping() is False
    with pytest.raises(StoreUnavailable):
        store.get("k")
    with pytest.raises(StoreUnavailable):
        store.start_sweeper(30)


def test_lock_timeout_surfaces_as_unavailable(clock):
    """A wedged lock must not block callers past the configured timeout."""
    store = InMemoryStateStore(timeout=0.01, clock=clock)
    store._lock.acquire()
    try:
        with pytest.raises(StoreUnavailable):
            store.set("k", "v")
        assert store.ping() is False
    finally:
        store._lock.release()
    assert store.set("k", "v") is True
    store.close()


def test_concurrent_increments_are_not_lost():
    store = InMemoryStateStore(timeout=5.0)
    workers = [
        threading.Thread(target=lambda: [store.increment("n") for _ in range(200)])
        for _ in range(8)
    ]
    for t in workers:
        t.start()
    for t in workers:
        t.join()
    assert store.get("n") == "1600"
    store.close()

"""
Unit tests for CredentialStateRegistry over the in-memory store.

Covered flows:
- block / unblock (and the marker ordering on partial failure)
- forced logout cutoff markers
- token blacklisting bounded by the token's own expiry
- the sliding login-attempt window
- fail-open behaviour and Outcome reporting when the store is down
"""

from __future__ import annotations

import logging
import time

import pytest
from freezegun import freeze_time

from sessionguard.infra.memory.memory_state_store import InMemoryStateStore
from sessionguard.services._shared.ports.state_store import (
    TTL_PERSISTENT,
    InvalidStoreArgument,
    StoreUnavailable,
)
from sessionguard.services.credentials.registry import CredentialStateRegistry


class FlakyStore:
    """Delegate to a real store but fail the named methods."""

    def __init__(self, inner, *failing: str) -> None:
        self.inner = inner
        self.failing = set(failing)

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name in self.failing:

            def _fail(*args, **kwargs):
                raise StoreUnavailable(f"{name} is down")

            return _fail
        return attr


@pytest.fixture
def down_registry(clock):
    store = InMemoryStateStore(clock=clock)
    store.close()
    return CredentialStateRegistry(store, clock=clock)


# --------------------------------------------------------------------------- #
# Blocking
# --------------------------------------------------------------------------- #


def test_block_user_sets_block_and_force_logout_markers(registry, memory_store):
    outcome = registry.block_user(42)

    assert outcome.value is True and outcome.ok
    assert registry.is_user_blocked(42)
    assert registry.is_forced_logout(42)
    assert memory_store.get("blocked_user:42") == "true"
    assert memory_store.ttl("blocked_user:42") == TTL_PERSISTENT


def test_blocked_marker_never_expires(registry, clock):
    registry.block_user(42)
    clock.advance(365 * 24 * 3600)
    assert registry.is_user_blocked(42)
    # the force-logout marker is bounded, the block is not
    assert not registry.is_forced_logout(42)


def test_unblock_removes_both_markers_and_is_idempotent(registry):
    registry.block_user("42")

    first = registry.unblock_user("42")
    second = registry.unblock_user("42")

    assert first.value is True
    assert second.value is False and second.ok
    assert not registry.is_user_blocked("42")
    assert not registry.is_forced_logout("42")


def test_int_and_str_ids_share_the_same_marker(registry):
    registry.block_user(7)
    assert registry.is_user_blocked("7")


def test_block_user_skips_force_logout_when_marker_write_fails(clock):
    inner = InMemoryStateStore(clock=clock)
    registry = CredentialStateRegistry(FlakyStore(inner, "set"), clock=clock)

    outcome = registry.block_user(1)

    assert outcome.value is False and outcome.degraded
    assert inner.get("force_logout:1") is None


def test_block_user_reports_degraded_when_only_force_logout_fails(clock):
    inner = InMemoryStateStore(clock=clock)
    registry = CredentialStateRegistry(FlakyStore(inner, "set_with_ttl"), clock=clock)

    outcome = registry.block_user(1)

    assert outcome.value is True and outcome.degraded
    assert inner.get("blocked_user:1") == "true"


@pytest.mark.parametrize("bad", ["", "   ", None])
def test_blank_user_id_is_a_caller_error(registry, bad):
    with pytest.raises(InvalidStoreArgument):
        registry.block_user(bad)


# --------------------------------------------------------------------------- #
# Forced logout
# --------------------------------------------------------------------------- #


def test_force_logout_records_cutoff_with_ttl(registry, memory_store, clock):
    registry.force_logout(5)

    assert registry.forced_logout_at(5) == pytest.approx(clock.now, abs=0.001)
    assert memory_store.ttl("force_logout:5") == 86400


def test_force_logout_marker_expires_after_ttl(registry, clock):
    registry.force_logout(5)
    clock.advance(86400)
    assert not registry.is_forced_logout(5)
    assert registry.forced_logout_at(5) is None


def test_clear_force_logout(registry):
    registry.force_logout(5)
    assert registry.clear_force_logout(5).value is True
    assert not registry.is_forced_logout(5)


def test_marker_without_cutoff_covers_everything(registry, memory_store):
    memory_store.set_with_ttl("force_logout:9", "true", 60)
    assert registry.forced_logout_at(9) == float("inf")


# --------------------------------------------------------------------------- #
# Token blacklist
# --------------------------------------------------------------------------- #


def test_blacklist_ttl_is_bounded_by_token_expiry(registry, memory_store, clock):
    outcome = registry.blacklist_token("tok", clock.now + 120)

    assert outcome.value is True
    assert registry.is_token_blacklisted("tok")
    assert memory_store.ttl("blacklist:tok") == 120


def test_blacklist_covers_sub_second_remainder(registry, memory_store, clock):
    clock.advance(0.2)

    outcome = registry.blacklist_token("tok", clock.now + 0.7)

    assert outcome.value is True
    assert registry.is_token_blacklisted("tok")
    assert memory_store.ttl("blacklist:tok") == 1


def test_blacklist_outlives_fractional_expiry(registry, clock):
    clock.advance(0.1)
    registry.blacklist_token("tok", clock.now + 1.8)

    clock.advance(1.2)
    assert registry.is_token_blacklisted("tok")
    clock.advance(1)
    assert not registry.is_token_blacklisted("tok")


def test_blacklist_entry_disappears_with_the_token(registry, clock):
    registry.blacklist_token("tok", clock.now + 120)
    clock.advance(120)
    assert not registry.is_token_blacklisted("tok")
    assert registry.list_blacklisted_tokens() == []


@pytest.mark.parametrize("offset", [0, -1, -3600])
def test_already_expired_token_is_a_silent_noop(registry, memory_store, clock, offset):
    outcome = registry.blacklist_token("old", clock.now + offset)

    assert outcome.value is False and outcome.ok
    assert memory_store.get("blacklist:old") is None


def test_blacklist_ttl_uses_whole_seconds_from_wall_clock():
    with freeze_time("2026-01-01 12:00:00.700"):
        store = InMemoryStateStore()
        registry = CredentialStateRegistry(store)
        exp = int(time.time()) + 60
        registry.blacklist_token("tok", exp)
        assert store.ttl("blacklist:tok") in (59, 60)
        store.close()


def test_empty_token_is_a_caller_error(registry):
    with pytest.raises(InvalidStoreArgument):
        registry.is_token_blacklisted("")


# --------------------------------------------------------------------------- #
# Login attempts
# --------------------------------------------------------------------------- #


def test_login_attempts_count_up_and_reset(registry):
    assert registry.get_login_attempts("a@example.com") == 0
    assert registry.increment_login_attempts("a@example.com") == 1
    assert registry.increment_login_attempts("a@example.com") == 2
    assert registry.get_login_attempts("a@example.com") == 2

    assert registry.reset_login_attempts("a@example.com").value is True
    assert registry.get_login_attempts("a@example.com") == 0


def test_each_failure_extends_the_window(registry, clock):
    """Four failures ten minutes apart keep counting; the window slides."""
    for _ in range(4):
        registry.increment_login_attempts("a@example.com")
        clock.advance(600)
    assert registry.get_login_attempts("a@example.com") == 4

    clock.advance(300)
    assert registry.get_login_attempts("a@example.com") == 0


def test_corrupt_counter_reads_as_zero(registry, memory_store, caplog):
    memory_store.set("login_attempts:x@example.com", "garbage")
    with caplog.at_level(logging.WARNING):
        assert registry.get_login_attempts("x@example.com") == 0
    assert "credentials.corrupt_counter" in caplog.text


# --------------------------------------------------------------------------- #
# Introspection
# --------------------------------------------------------------------------- #


def test_lists_and_stats(registry, clock):
    registry.block_user(1)
    registry.block_user(2)
    registry.force_logout(3)
    registry.blacklist_token("t1", clock.now + 60)
    registry.increment_login_attempts("a@example.com")

    assert registry.list_blocked_users() == ["1", "2"]
    assert registry.list_forced_logout_users() == ["1", "2", "3"]
    assert registry.list_blacklisted_tokens() == ["t1"]

    stats = registry.stats()
    assert stats.blocked_users == 2
    assert stats.forced_logout_users == 3
    assert stats.blacklisted_tokens == 1
    assert stats.login_attempt_counters == 1
    assert stats.store is not None and stats.store.total == 7
    assert not stats.degraded


# --------------------------------------------------------------------------- #
# Store unavailable
# --------------------------------------------------------------------------- #


def test_readers_fail_open_when_store_is_down(down_registry):
    assert down_registry.is_user_blocked(1) is False
    assert down_registry.is_forced_logout(1) is False
    assert down_registry.is_token_blacklisted("tok") is False
    assert down_registry.get_login_attempts("a@example.com") == 0
    assert down_registry.increment_login_attempts("a@example.com") == 0
    assert down_registry.list_blocked_users() == []


def test_probes_report_degradation(down_registry):
    assert down_registry.probe_user_blocked(1).degraded
    assert down_registry.probe_token_blacklisted("tok").degraded
    assert down_registry.probe_forced_logout(1).degraded
    assert down_registry.probe_login_attempts("a@example.com").degraded


def test_writers_report_degradation_without_raising(down_registry, clock):
    assert down_registry.block_user(1).degraded
    assert down_registry.unblock_user(1).degraded
    assert down_registry.force_logout(1).degraded
    assert down_registry.blacklist_token("tok", clock.now + 60).degraded
    assert down_registry.reset_login_attempts("a@example.com").degraded
    stats = down_registry.stats()
    assert stats.degraded and stats.store is None


def test_degradation_is_logged_with_operation_name(down_registry, caplog):
    with caplog.at_level(logging.WARNING, logger="sessionguard.services.credentials.registry"):
        down_registry.is_user_blocked(1)
    assert "credentials.degraded op=is_user_blocked" in caplog.text

# sessionguard/services/credentials/registry.py
"""
Credential state registry.

Named operations over the ephemeral state store: administrative blocks,
forced logouts, token blacklisting and failed-login counters. Each operation
is a short sequence of single-key store calls; none is atomic across keys,
so multi-key operations are ordered so that a partial failure leaves the
more restrictive state behind.

Store outages never escape this module: every call is wrapped into an
:class:`Outcome` and the plain readers return the safe default (``False``,
``0``, ``[]``). Argument errors (:class:`InvalidStoreArgument`) propagate.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from typing import TypeVar

from sessionguard.services._shared.ports.state_store import (
    InvalidStoreArgument,
    StateStore,
    StoreUnavailable,
)
from sessionguard.services.credentials.dto import Outcome, RegistryStats

log = logging.getLogger(__name__)

T = TypeVar("T")

BLOCKED_USER_PREFIX = "blocked_user:"
FORCE_LOGOUT_PREFIX = "force_logout:"
BLACKLIST_PREFIX = "blacklist:"
LOGIN_ATTEMPTS_PREFIX = "login_attempts:"

DEFAULT_FORCE_LOGOUT_TTL = 24 * 60 * 60
DEFAULT_ATTEMPT_WINDOW = 15 * 60

_MARKER = "true"


def _part(name: str, value: object) -> str:
    """Render a key component, rejecting blanks."""
    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidStoreArgument(f"{name} must be a non-empty value.")
    return text


class CredentialStateRegistry:
    """
    Domain operations on top of a :class:`StateStore`.

    :param store: Injected state store (in-memory or Redis).
    :param force_logout_ttl: Lifetime of a ForceLogoutMarker, in seconds.
    :param attempt_window: Sliding window of the login-attempt counter.
    :param clock: Callable returning epoch seconds; ``time.time`` when omitted.
    """

    def __init__(
        self,
        store: StateStore,
        *,
        force_logout_ttl: int = DEFAULT_FORCE_LOGOUT_TTL,
        attempt_window: int = DEFAULT_ATTEMPT_WINDOW,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if force_logout_ttl <= 0 or attempt_window <= 0:
            raise InvalidStoreArgument("Registry TTLs must be positive.")
        self.store = store
        self.force_logout_ttl = int(force_logout_ttl)
        self.attempt_window = int(attempt_window)
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.time()

    @staticmethod
    def _attempt(op: str, fn: Callable[[], T], default: T) -> Outcome[T]:
        try:
            return Outcome(fn())
        except StoreUnavailable as exc:
            log.warning("credentials.degraded op=%s reason=%s", op, exc)
            return Outcome(default, degraded=True)

    @staticmethod
    def blocked_key(user_id: int | str) -> str:
        return BLOCKED_USER_PREFIX + _part("user_id", user_id)

    @staticmethod
    def force_logout_key(user_id: int | str) -> str:
        return FORCE_LOGOUT_PREFIX + _part("user_id", user_id)

    @staticmethod
    def blacklist_key(token: str) -> str:
        return BLACKLIST_PREFIX + _part("token", token)

    @staticmethod
    def attempts_key(email: str) -> str:
        return LOGIN_ATTEMPTS_PREFIX + _part("email", email)

    # ------------------------------------------------------------------ #
    # Blocking
    # ------------------------------------------------------------------ #

    def block_user(self, user_id: int | str) -> Outcome[bool]:
        """
        Block ``user_id`` and terminate all of its sessions.

        The BlockedUserMarker is written first. If that write fails nothing
        else is attempted (``value=False``); if only the force-logout write
        fails the user is still blocked (``value=True, degraded=True``).
        """
        key = self.blocked_key(user_id)
        marker = self._attempt("block_user", lambda: self.store.set(key, _MARKER), False)
        if marker.degraded:
            return marker
        forced = self.force_logout(user_id)
        log.info("credentials.user_blocked user_id=%s", user_id)
        return Outcome(True, degraded=forced.degraded)

    def unblock_user(self, user_id: int | str) -> Outcome[bool]:
        """
        Remove both the BlockedUserMarker and the ForceLogoutMarker.

        Idempotent; ``value`` tells whether the user was blocked.
        """
        key = self.blocked_key(user_id)
        was_blocked = self._attempt("unblock_user", lambda: self.store.delete(key), False)
        cleared = self.clear_force_logout(user_id)
        log.info("credentials.user_unblocked user_id=%s", user_id)
        return Outcome(was_blocked.value, degraded=was_blocked.degraded or cleared.degraded)

    def probe_user_blocked(self, user_id: int | str) -> Outcome[bool]:
        key = self.blocked_key(user_id)
        return self._attempt("is_user_blocked", lambda: self.store.get(key) is not None, False)

    def is_user_blocked(self, user_id: int | str) -> bool:
        return self.probe_user_blocked(user_id).value

    # ------------------------------------------------------------------ #
    # Forced logout
    # ------------------------------------------------------------------ #

    def force_logout(self, user_id: int | str) -> Outcome[bool]:
        """
        Invalidate every session of ``user_id`` issued up to now.

        The marker stores the cutoff (epoch seconds, millisecond precision)
        and expires after ``force_logout_ttl``.
        """
        key = self.force_logout_key(user_id)
        cutoff = f"{self._now():.3f}"
        return self._attempt(
            "force_logout",
            lambda: self.store.set_with_ttl(key, cutoff, self.force_logout_ttl),
            False,
        )

    def clear_force_logout(self, user_id: int | str) -> Outcome[bool]:
        key = self.force_logout_key(user_id)
        return self._attempt("clear_force_logout", lambda: self.store.delete(key), False)

    def probe_forced_logout(self, user_id: int | str) -> Outcome[float | None]:
        """Return the force-logout cutoff for ``user_id`` (``None`` when absent)."""
        key = self.force_logout_key(user_id)
        raw = self._attempt("is_forced_logout", lambda: self.store.get(key), None)
        if raw.value is None:
            return Outcome(None, degraded=raw.degraded)
        try:
            return Outcome(float(raw.value))
        except ValueError:
            # Marker without a cutoff covers every token.
            return Outcome(float("inf"))

    def forced_logout_at(self, user_id: int | str) -> float | None:
        return self.probe_forced_logout(user_id).value

    def is_forced_logout(self, user_id: int | str) -> bool:
        return self.probe_forced_logout(user_id).value is not None

    # ------------------------------------------------------------------ #
    # Token blacklist
    # ------------------------------------------------------------------ #

    def blacklist_token(self, token: str, expiry_epoch_seconds: int | float) -> Outcome[bool]:
        """
        Reject ``token`` until its own expiry.

        The TTL is rounded up to whole seconds, so the entry never expires
        before the token does.

        A token whose expiry is not in the future is left alone: verification
        already rejects it, so ``value`` is ``False`` and nothing is written.
        """
        key = self.blacklist_key(token)
        ttl = math.ceil(expiry_epoch_seconds - self._now())
        if ttl <= 0:
            return Outcome(False)
        outcome = self._attempt(
            "blacklist_token", lambda: self.store.set_with_ttl(key, _MARKER, ttl), False
        )
        if outcome.ok:
            log.info("credentials.token_blacklisted ttl=%ss", ttl)
        return outcome

    def probe_token_blacklisted(self, token: str) -> Outcome[bool]:
        key = self.blacklist_key(token)
        return self._attempt(
            "is_token_blacklisted", lambda: self.store.get(key) is not None, False
        )

    def is_token_blacklisted(self, token: str) -> bool:
        return self.probe_token_blacklisted(token).value

    # ------------------------------------------------------------------ #
    # Login attempts
    # ------------------------------------------------------------------ #

    def increment_login_attempts(self, email: str) -> int:
        """
        Count one failed login and push the window end ``attempt_window`` out.

        Returns the new count, or ``0`` when the store is unavailable.
        """
        key = self.attempts_key(email)
        return self._attempt(
            "increment_login_attempts",
            lambda: self.store.increment(key, ttl_seconds=self.attempt_window),
            0,
        ).value

    def reset_login_attempts(self, email: str) -> Outcome[bool]:
        key = self.attempts_key(email)
        return self._attempt("reset_login_attempts", lambda: self.store.delete(key), False)

    def probe_login_attempts(self, email: str) -> Outcome[int]:
        key = self.attempts_key(email)
        raw = self._attempt("get_login_attempts", lambda: self.store.get(key), None)
        if raw.value is None:
            return Outcome(0, degraded=raw.degraded)
        try:
            return Outcome(int(raw.value))
        except ValueError:
            log.warning("credentials.corrupt_counter key=%s", key)
            return Outcome(0)

    def get_login_attempts(self, email: str) -> int:
        return self.probe_login_attempts(email).value

    # ------------------------------------------------------------------ #
    # Introspection (never on the request path)
    # ------------------------------------------------------------------ #

    def _ids(self, op: str, prefix: str) -> Outcome[list[str]]:
        keys = self._attempt(op, lambda: self.store.keys_with_prefix(prefix), [])
        return Outcome([k[len(prefix) :] for k in keys.value], degraded=keys.degraded)

    def list_blocked_users(self) -> list[str]:
        return self._ids("list_blocked_users", BLOCKED_USER_PREFIX).value

    def list_forced_logout_users(self) -> list[str]:
        return self._ids("list_forced_logout_users", FORCE_LOGOUT_PREFIX).value

    def list_blacklisted_tokens(self) -> list[str]:
        return self._ids("list_blacklisted_tokens", BLACKLIST_PREFIX).value

    def stats(self) -> RegistryStats:
        blocked = self._ids("stats", BLOCKED_USER_PREFIX)
        forced = self._ids("stats", FORCE_LOGOUT_PREFIX)
        tokens = self._ids("stats", BLACKLIST_PREFIX)
        attempts = self._ids("stats", LOGIN_ATTEMPTS_PREFIX)
        store = self._attempt("stats", self.store.stats, None)
        return RegistryStats(
            blocked_users=len(blocked.value),
            forced_logout_users=len(forced.value),
            blacklisted_tokens=len(tokens.value),
            login_attempt_counters=len(attempts.value),
            store=store.value,
            degraded=any(o.degraded for o in (blocked, forced, tokens, attempts, store)),
        )

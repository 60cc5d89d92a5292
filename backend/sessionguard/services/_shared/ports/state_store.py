from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class StateStoreError(Exception):
    """Base class for failures raised by a :class:`StateStore` adapter."""


class StoreUnavailable(StateStoreError):
    """
    The store cannot be reached, timed out, or has been closed.

    Treated as transient by callers: the credential registry absorbs it and
    falls back to a safe default instead of propagating.
    """


class InvalidStoreArgument(StateStoreError, ValueError):
    """
    A caller passed an argument the store contract forbids.

    Examples: an empty key, a non-string value, a non-positive TTL, or an
    increment on a value that is not an integer. This is a programming error,
    never a runtime condition to recover from.
    """


#: ``ttl()`` sentinel for a live key without expiry.
TTL_PERSISTENT = -1
#: ``ttl()`` sentinel for an absent (or expired) key.
TTL_MISSING = -2


@dataclass(frozen=True, slots=True)
class StoreStats:
    """
    Point-in-time counters for operational visibility.

    :ivar total: Live keys.
    :ivar with_expiry: Live keys carrying a TTL.
    :ivar without_expiry: Live keys without TTL.
    :ivar backend: Adapter name (``"memory"`` or ``"redis"``).
    """

    total: int
    with_expiry: int
    without_expiry: int
    backend: str


class StateStore(Protocol):
    """
    Ephemeral key-value store with per-key expiry.

    Expired entries must be indistinguishable from entries that were never
    written. Every method may raise :class:`StoreUnavailable`; argument
    violations raise :class:`InvalidStoreArgument`.
    """

    def set(self, key: str, value: str) -> bool: ...

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool: ...

    def get(self, key: str) -> str | None: ...

    def delete(self, key: str) -> bool: ...

    def increment(self, key: str, *, ttl_seconds: int | None = None) -> int: ...

    def expire(self, key: str, ttl_seconds: int) -> bool: ...

    def ttl(self, key: str) -> int: ...

    def keys_with_prefix(self, prefix: str) -> list[str]: ...

    def stats(self) -> StoreStats: ...

    def sweep(self) -> int: ...

    def ping(self) -> bool:
        """Report reachability; never raises."""
        ...

    def start_sweeper(self, interval_seconds: float) -> None: ...

    def close(self) -> None: ...


def validate_key(key: str) -> str:
    """Reject keys the store contract does not accept."""
    if not isinstance(key, str) or not key:
        raise InvalidStoreArgument("Key must be a non-empty string.")
    return key


def validate_value(value: str) -> str:
    """Reject non-string values."""
    if not isinstance(value, str):
        raise InvalidStoreArgument(f"Value must be a string, got {type(value).__name__}.")
    return value


def validate_ttl(ttl_seconds: int) -> int:
    """Reject non-positive (or non-integer) TTLs."""
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
        raise InvalidStoreArgument("TTL must be an integer number of seconds.")
    if ttl_seconds <= 0:
        raise InvalidStoreArgument(f"TTL must be positive, got {ttl_seconds}.")
    return ttl_seconds

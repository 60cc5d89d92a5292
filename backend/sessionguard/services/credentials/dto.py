# sessionguard/services/credentials/dto.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from sessionguard.services._shared.ports.state_store import StoreStats

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """
    Result of a registry call against the state store.

    :param value: Operation result, or the safe default when degraded.
    :param degraded: ``True`` when the store was unreachable and ``value`` is
        the fallback rather than an observed answer.
    """

    value: T
    degraded: bool = False

    @property
    def ok(self) -> bool:
        return not self.degraded


@dataclass(frozen=True, slots=True)
class RegistryStats:
    """
    Aggregate counters for operational visibility.

    :param blocked_users: Number of BlockedUserMarker keys.
    :param forced_logout_users: Number of live ForceLogoutMarker keys.
    :param blacklisted_tokens: Number of live TokenBlacklistEntry keys.
    :param login_attempt_counters: Number of live LoginAttemptCounter keys.
    :param store: Raw store counters (``None`` when degraded).
    :param degraded: Whether any lookup fell back to a default.
    """

    blocked_users: int
    forced_logout_users: int
    blacklisted_tokens: int
    login_attempt_counters: int
    store: StoreStats | None
    degraded: bool = False

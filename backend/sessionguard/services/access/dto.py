# sessionguard/services/access/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class DenyReason(str, Enum):
    """Why an authenticated request was refused (internal; never sent to clients)."""

    TOKEN_INVALIDATED = "token invalidated"
    ACCOUNT_BLOCKED = "account blocked"
    SESSION_TERMINATED = "session terminated"


@dataclass(frozen=True, slots=True)
class Verdict:
    """
    Single ALLOW / DENY(reason) decision for one request.

    :ivar allowed: Whether the principal may proceed.
    :ivar reason: Denial reason, ``None`` when allowed.
    :ivar payload: Decoded token payload, passed through unchanged on ALLOW.
    :ivar degraded: Names of checks skipped because the state store was
        unavailable (treated as "signal absent").
    """

    allowed: bool
    reason: DenyReason | None = None
    payload: Mapping[str, Any] | None = None
    degraded: tuple[str, ...] = ()

    @classmethod
    def allow(cls, payload: Mapping[str, Any], degraded: tuple[str, ...] = ()) -> Verdict:
        return cls(allowed=True, payload=payload, degraded=degraded)

    @classmethod
    def deny(cls, reason: DenyReason, degraded: tuple[str, ...] = ()) -> Verdict:
        return cls(allowed=False, reason=reason, degraded=degraded)

# sessionguard/services/admin/dto.py
from __future__ import annotations

from dataclasses import dataclass, field

from sessionguard.services.credentials.dto import RegistryStats


@dataclass(frozen=True, slots=True)
class UserStateOut:
    """
    Credential state of one user after an administrative action.

    :param user_id: Target user.
    :param blocked: Whether the user is blocked after the action.
    :param sessions_terminated: Whether a force-logout marker was written.
    :param degraded: ``True`` when the state store missed part of the action.
    """

    user_id: int
    blocked: bool
    sessions_terminated: bool = False
    degraded: bool = False


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """
    Operational view of the credential state.

    Blacklisted tokens are listed as SHA-256 fingerprints, never raw.
    """

    blocked_users: list[str] = field(default_factory=list)
    forced_logout_users: list[str] = field(default_factory=list)
    blacklisted_tokens: list[str] = field(default_factory=list)
    stats: RegistryStats | None = None

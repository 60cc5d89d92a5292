# sessionguard/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized by the throttle and repository).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param token: Encoded access JWT exactly as presented.
    :type token: str
    :param all_sessions: If True, terminate every session of the subject.
    :type all_sessions: bool
    """

    token: str
    all_sessions: bool = False


@dataclass(frozen=True, slots=True)
class ChangePasswordIn:
    current_password: str
    new_password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenOut:
    """
    Output DTO with the issued access token.

    :param access_token: Encoded access JWT.
    :param expires_in: Lifetime in seconds.
    :param token_type: Always ``"Bearer"``.
    """

    access_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class LogoutOut:
    """
    Result of a logout.

    :param token_revoked: ``True`` when a blacklist entry was written.
    :param sessions_terminated: ``True`` when ``all_sessions`` forced a logout.
    :param degraded: ``True`` when the state store could not record a step.
    """

    token_revoked: bool
    sessions_terminated: bool = False
    degraded: bool = False


@dataclass(frozen=True, slots=True)
class WhoAmIOut:
    id: int
    email: str
    name: str
    is_admin: bool
    scopes: list[str] = field(default_factory=list)


# ------------------------ Config DTO --------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    """

    access_expires: timedelta = timedelta(minutes=15)

"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. The translation to HTTP responses (RFC 7807) is handled by
``sessionguard/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer or BaseService translates them to APIError.
    """


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


class InvalidCredentialsError(ServiceError):
    """Raised when email/password do not match an active user."""

    def __init__(self, message: str = "Invalid email or password.") -> None:
        super().__init__(message)


class AccountBlockedError(ServiceError):
    """Raised when a blocked user tries to authenticate."""

    def __init__(self, message: str = "Account is blocked.") -> None:
        super().__init__(message)


class ThrottledError(ServiceError):
    """
    Raised when the login-attempt threshold was reached.

    :param attempts: Failed attempts counted in the current window.
    """

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts

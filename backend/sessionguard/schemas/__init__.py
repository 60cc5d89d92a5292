"""Convenience exports for API schemas."""

from __future__ import annotations

from .admin import RegistryStatsSchema, StateSnapshotSchema, StoreStatsSchema, UserStateSchema
from .auth import (
    ChangePasswordSchema,
    LoginSchema,
    LogoutResponseSchema,
    LogoutSchema,
    TokenResponseSchema,
    WhoAmISchema,
)

__all__ = [
    "ChangePasswordSchema",
    "LoginSchema",
    "LogoutResponseSchema",
    "LogoutSchema",
    "TokenResponseSchema",
    "WhoAmISchema",
    "RegistryStatsSchema",
    "StateSnapshotSchema",
    "StoreStatsSchema",
    "UserStateSchema",
]

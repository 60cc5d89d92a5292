"""
sessionguard.services._shared.ports
===================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for the credential-state engine and token handling.

These ports decouple the service layer from concrete implementations
of ephemeral state storage and token signing.

Modules
-------
- :mod:`state_store`:
    Defines :class:`~.StateStore`: expiring key-value store contract, plus
    :class:`~.StoreUnavailable` and :class:`~.InvalidStoreArgument`.

- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`: abstraction for JWT creation and decoding.

Design Notes
------------
All these ports follow the *Dependency Inversion Principle (DIP)* to keep
the service layer independent from implementation details.
Concrete adapters (in-memory, Redis, Flask-JWT-Extended) live under
``sessionguard.infra``.
"""

from __future__ import annotations

from .state_store import (
    TTL_MISSING,
    TTL_PERSISTENT,
    InvalidStoreArgument,
    StateStore,
    StateStoreError,
    StoreStats,
    StoreUnavailable,
)
from .token_provider import StubTokenProvider, TokenProvider

__all__ = [
    "StateStore",
    "StateStoreError",
    "StoreUnavailable",
    "InvalidStoreArgument",
    "StoreStats",
    "TTL_MISSING",
    "TTL_PERSISTENT",
    "TokenProvider",
    "StubTokenProvider",
]

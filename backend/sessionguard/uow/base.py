"""
Abstract Unit of Work contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from sessionguard.repositories.user import UserRepository


class SupportsCommit(Protocol):
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class UnitOfWork(ABC):
    """
    Transactional boundary for one use-case over the user records.

    Commits on success, rolls back on error. Credential state lives in the
    state store and is never part of this transaction.
    """

    users: UserRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...

"""Unit of Work abstractions and the SQLAlchemy implementation."""

from .base import SupportsCommit, UnitOfWork
from .sqlalchemy_uow import SQLAlchemyUnitOfWork

__all__ = [
    "SupportsCommit",
    "UnitOfWork",
    "SQLAlchemyUnitOfWork",
]

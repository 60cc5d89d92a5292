"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from sessionguard.core.extensions import db
from sessionguard.repositories import UserRepository
from sessionguard.uow.base import UnitOfWork


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    :param session: Explicit session; defaults to ``db.session``.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session = session if session is not None else db.session
        self.users = UserRepository(session=self.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

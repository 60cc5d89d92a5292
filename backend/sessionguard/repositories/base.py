"""Generic repository base for SQLAlchemy 2.x.

Repositories stay persistence-only: no business rules and no
commit/rollback, which belong to the services' unit of work.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from sessionguard.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Shared lookup and staging helpers bound to one session.

    :param session: Session shared across the Unit of Work scope; falls back
        to the Flask-scoped session when omitted.
    """

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else db.session

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize its primary key."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single entity by primary key (``id``)."""
        stmt = select(self.model).where(self.model.id == entity_id)  # type: ignore[attr-defined]
        return self.session.execute(stmt).scalars().first()

    def flush(self) -> None:
        self.session.flush()

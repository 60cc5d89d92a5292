"""Repository package exposing persistence-layer access."""

from __future__ import annotations

from sessionguard.repositories.base import BaseRepository
from sessionguard.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]

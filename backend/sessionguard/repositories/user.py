"""User repository for persistence and credential lookups."""

from __future__ import annotations

from sqlalchemy import select

from sessionguard.models.user import User
from sessionguard.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles tokens or credential state, only DB-level user records.
    """

    model = User

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.email == email.lower().strip())
        return self.session.execute(stmt).scalars().first()

    def authenticate(self, email: str, password: str) -> User | None:
        """Return the active user matching ``email`` and ``password``.

        Blocked users are returned as well; refusing them is a service-level
        decision.
        """
        user = self.get_by_email(email)
        if user is None or (not user.is_active and not user.is_blocked):
            return None
        if not user.verify_password(password):
            return None
        return user

    def update_password(self, user_id: int, new_password: str) -> None:
        """Rehash and store a new password.

        :raises ValueError: If the user does not exist.
        """
        user = self.get(user_id)
        if user is None:
            raise ValueError(f"User {user_id} not found.")
        user.password = new_password  # invokes setter → hash
        self.flush()

    def set_blocked(self, user_id: int, blocked: bool) -> User | None:
        """Persist the block flags (a blocked user is also inactive)."""
        user = self.get(user_id)
        if user is None:
            return None
        user.is_blocked = blocked
        user.is_active = not blocked
        self.flush()
        return user

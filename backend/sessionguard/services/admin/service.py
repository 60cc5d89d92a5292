# sessionguard/services/admin/service.py
from __future__ import annotations

import hashlib
import logging

from sessionguard.repositories.user import UserRepository
from sessionguard.services._shared.base import BaseService
from sessionguard.services._shared.errors import NotFoundError
from sessionguard.services.admin.dto import StateSnapshot, UserStateOut
from sessionguard.services.credentials.registry import CredentialStateRegistry

log = logging.getLogger(__name__)


def token_fingerprint(token: str) -> str:
    """Short SHA-256 fingerprint identifying a token without exposing it."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class AdminService(BaseService):
    """
    Administrative account actions (block, unblock, force-logout).

    The registry is always updated before the user record: if the process
    dies in between, the fast path already denies and the durable flags are
    merely behind.
    """

    def __init__(self, *, registry: CredentialStateRegistry) -> None:
        self.registry = registry

    def _require_user(self, repo: UserRepository, user_id: int):
        user = repo.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def block_user(self, user_id: int) -> UserStateOut:
        """
        Block ``user_id``: registry markers first, then the persistent flags.

        :raises NotFoundError: If the user does not exist.
        """
        with self.rw_uow() as uow:
            self._require_user(uow.users, user_id)
            outcome = self.registry.block_user(user_id)
            uow.users.set_blocked(user_id, True)

        log.info("admin.user_blocked user_id=%s degraded=%s", user_id, outcome.degraded)
        return UserStateOut(
            user_id=user_id,
            blocked=True,
            sessions_terminated=outcome.value and not outcome.degraded,
            degraded=outcome.degraded,
        )

    def unblock_user(self, user_id: int) -> UserStateOut:
        """Remove both markers and clear the persistent flags; idempotent."""
        with self.rw_uow() as uow:
            self._require_user(uow.users, user_id)
            outcome = self.registry.unblock_user(user_id)
            uow.users.set_blocked(user_id, False)

        log.info("admin.user_unblocked user_id=%s degraded=%s", user_id, outcome.degraded)
        return UserStateOut(user_id=user_id, blocked=False, degraded=outcome.degraded)

    def force_logout(self, user_id: int) -> UserStateOut:
        with self.rw_uow() as uow:
            user = self._require_user(uow.users, user_id)
            blocked = bool(user.is_blocked)

        outcome = self.registry.force_logout(user_id)
        log.info("admin.force_logout user_id=%s degraded=%s", user_id, outcome.degraded)
        return UserStateOut(
            user_id=user_id,
            blocked=blocked,
            sessions_terminated=outcome.value,
            degraded=outcome.degraded,
        )

    def state_snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            blocked_users=self.registry.list_blocked_users(),
            forced_logout_users=self.registry.list_forced_logout_users(),
            blacklisted_tokens=[
                token_fingerprint(t) for t in self.registry.list_blacklisted_tokens()
            ],
            stats=self.registry.stats(),
        )

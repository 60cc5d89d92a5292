# sessionguard/services/auth/service.py
from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sessionguard.repositories.user import UserRepository
from sessionguard.services._shared.base import BaseService
from sessionguard.services._shared.errors import (
    AccountBlockedError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    ThrottledError,
)
from sessionguard.services._shared.ports.token_provider import TokenProvider
from sessionguard.services.access.evaluator import AUTH_TIME_CLAIM
from sessionguard.services.auth.dto import (
    AuthTokenConfig,
    ChangePasswordIn,
    LoginIn,
    LogoutIn,
    LogoutOut,
    TokenOut,
    WhoAmIOut,
)
from sessionguard.services.credentials.dto import Outcome
from sessionguard.services.credentials.registry import CredentialStateRegistry
from sessionguard.services.throttle.service import THROTTLED_MESSAGE, LoginAttemptThrottle

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Authentication lifecycle service (login / logout / password change).

    Tokens are issued through a pluggable :class:`TokenProvider`; credential
    state (throttle counters, blacklist, forced logouts) lives in the
    :class:`CredentialStateRegistry`.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        registry: CredentialStateRegistry,
        throttle: LoginAttemptThrottle,
        token_cfg: AuthTokenConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for issuing/decoding JWTs.
        :param registry: Credential state registry.
        :param throttle: Login-attempt throttle (shares the registry).
        :param token_cfg: Access token expiry configuration.
        :param clock: Epoch-seconds clock used for ``auth_time``.
        """
        self.tokens = token_provider
        self.registry = registry
        self.throttle = throttle
        self.cfg = token_cfg or AuthTokenConfig()
        self._clock = clock or time.time

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenOut:
        """
        Authenticate credentials and issue an access token.

        The throttle is consulted before any credential check, so a locked-out
        identity gets no password oracle.

        :raises ThrottledError: When the failed-attempt threshold is reached.
        :raises InvalidCredentialsError: On unknown email or wrong password.
        :raises AccountBlockedError: When the account is blocked.
        """
        decision = self.throttle.check(dto.email)
        if not decision.allowed:
            raise ThrottledError(THROTTLED_MESSAGE, attempts=decision.attempts)

        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.authenticate(dto.email, dto.password)
            if user is None:
                attempts = self.throttle.record_failure(dto.email)
                log.info("auth.login_failed attempts=%d", attempts)
                raise InvalidCredentialsError()
            if user.is_blocked or self.registry.is_user_blocked(user.id):
                log.info("auth.login_refused user_id=%s reason=blocked", user.id)
                raise AccountBlockedError()
            user_id, scopes = user.id, list(user.scopes)

        self.throttle.record_success(dto.email)
        access = self.tokens.create_access_token(
            identity=str(user_id),
            additional_claims={"scopes": scopes, AUTH_TIME_CLAIM: round(self._clock(), 3)},
            expires_delta=self.cfg.access_expires,
        )
        log.info("auth.login user_id=%s", user_id)
        return TokenOut(
            access_token=access,
            expires_in=int(self.cfg.access_expires.total_seconds()),
        )

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> LogoutOut:
        """
        Blacklist the presented token until its own expiry.

        With ``all_sessions`` the subject is force-logged-out as well, which
        covers tokens issued on other devices.
        """
        expires_at = self.tokens.get_expires_at(dto.token)
        revoked = self.registry.blacklist_token(dto.token, expires_at.timestamp())
        degraded = revoked.degraded

        terminated = False
        if dto.all_sessions:
            forced = self.registry.force_logout(self.tokens.get_subject(dto.token))
            terminated, degraded = forced.value, degraded or forced.degraded

        return LogoutOut(
            token_revoked=revoked.value, sessions_terminated=terminated, degraded=degraded
        )

    # ------------------------------------------------------------------ #
    # Password change
    # ------------------------------------------------------------------ #

    def change_password(self, user_id: int, dto: ChangePasswordIn) -> Outcome[bool]:
        """
        Verify the current password, store the new one and end every session.

        :returns: The force-logout outcome.
        :raises NotFoundError: If the user does not exist.
        :raises InvalidCredentialsError: If ``current_password`` is wrong.
        """
        if dto.current_password == dto.new_password:
            raise ServiceError("New password must differ from the current one.")

        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            if not user.verify_password(dto.current_password):
                raise InvalidCredentialsError("Current password is incorrect.")
            repo.update_password(user_id, dto.new_password)

        log.info("auth.password_changed user_id=%s", user_id)
        return self.registry.force_logout(user_id)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def whoami(self, user_id: int) -> WhoAmIOut:
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return WhoAmIOut(
                id=user.id,
                email=user.email,
                name=user.name,
                is_admin=user.is_admin,
                scopes=list(user.scopes),
            )

# sessionguard/services/throttle/service.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sessionguard.services.credentials.registry import CredentialStateRegistry

log = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
THROTTLED_MESSAGE = "Too many login attempts. Please try again later."


@dataclass(frozen=True, slots=True)
class ThrottleDecision:
    """
    Pre-authentication throttle result.

    :param allowed: ``False`` once the identity reached the threshold.
    :param attempts: Failed attempts currently counted in the window.
    :param degraded: ``True`` when the counter could not be read (fail-open).
    """

    allowed: bool
    attempts: int
    degraded: bool = False


class LoginAttemptThrottle:
    """
    Failed-login counter with a sliding lockout window.

    ``check`` never writes, so a refused request does not extend the window;
    only verified failures (``record_failure``) do.
    """

    def __init__(
        self, registry: CredentialStateRegistry, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.registry = registry
        self.max_attempts = max_attempts

    @staticmethod
    def normalize(email: str) -> str:
        return (email or "").strip().lower()

    def check(self, email: str) -> ThrottleDecision:
        counted = self.registry.probe_login_attempts(self.normalize(email))
        allowed = counted.value < self.max_attempts
        if not allowed:
            log.info("throttle.denied attempts=%d", counted.value)
        return ThrottleDecision(allowed=allowed, attempts=counted.value, degraded=counted.degraded)

    def record_failure(self, email: str) -> int:
        return self.registry.increment_login_attempts(self.normalize(email))

    def record_success(self, email: str) -> None:
        self.registry.reset_login_attempts(self.normalize(email))

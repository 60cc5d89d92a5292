"""Service layer public API.

Callers import from :mod:`sessionguard.services` without knowing the internal
structure.

Re-exports
----------
- Base primitives: :class:`BaseService`
- Credential state: :class:`CredentialStateRegistry`, :class:`Outcome`
- Access: :class:`AccessVerdictEvaluator`, :class:`Verdict`, :class:`DenyReason`
- Throttle: :class:`LoginAttemptThrottle`, :class:`ThrottleDecision`
- Application services: :class:`AuthService`, :class:`AdminService`
"""

from __future__ import annotations

from ._shared.base import BaseService
from .access.dto import DenyReason, Verdict
from .access.evaluator import AccessVerdictEvaluator
from .admin.service import AdminService
from .auth.service import AuthService
from .credentials.dto import Outcome, RegistryStats
from .credentials.registry import CredentialStateRegistry
from .throttle.service import LoginAttemptThrottle, ThrottleDecision

__all__ = [
    "BaseService",
    "DenyReason",
    "Verdict",
    "AccessVerdictEvaluator",
    "AdminService",
    "AuthService",
    "Outcome",
    "RegistryStats",
    "CredentialStateRegistry",
    "LoginAttemptThrottle",
    "ThrottleDecision",
]

# sessionguard/services/access/evaluator.py
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sessionguard.services.access.dto import DenyReason, Verdict
from sessionguard.services.credentials.registry import CredentialStateRegistry

log = logging.getLogger(__name__)

#: Sub-second issue time (epoch seconds) stamped by ``AuthService``.
AUTH_TIME_CLAIM = "auth_time"


class AccessVerdictEvaluator:
    """
    Combine credential-state signals into one access decision.

    Checks run in a fixed order and the first denial wins:

    1. token blacklisted -> ``token invalidated``
    2. subject blocked -> ``account blocked``
    3. subject force-logged-out at or after the token was issued -> ``session terminated``

    The force-logout marker only covers tokens issued up to its recorded
    cutoff; tokens issued later (a re-login after a password change) are
    allowed while the marker is still live. A token without a usable issue
    time is always covered.

    A check whose store lookup degraded counts as "signal absent": the
    authentication path stays available while the store is down.

    :param registry: Credential state registry to consult.
    :param subject_claim: Payload claim holding the user id.
    :param issued_at_claims: Claims holding the issue time (epoch seconds), in
        order of preference; the first one present is used.
    """

    def __init__(
        self,
        registry: CredentialStateRegistry,
        *,
        subject_claim: str = "sub",
        issued_at_claims: Sequence[str] = (AUTH_TIME_CLAIM, "iat"),
    ) -> None:
        self.registry = registry
        self.subject_claim = subject_claim
        self.issued_at_claims = tuple(issued_at_claims)

    def evaluate(self, token: str, payload: Mapping[str, Any]) -> Verdict:
        """
        Return the verdict for an already-verified ``token`` and its payload.

        :param token: Encoded token exactly as presented by the client.
        :param payload: Decoded claims from the verification oracle.
        :returns: :class:`Verdict`; never raises on store outages.
        """
        degraded: list[str] = []
        subject = payload.get(self.subject_claim)

        if not token:
            return self._deny(DenyReason.TOKEN_INVALIDATED, subject, degraded)

        listed = self.registry.probe_token_blacklisted(token)
        if listed.degraded:
            degraded.append("blacklist")
        elif listed.value:
            return self._deny(DenyReason.TOKEN_INVALIDATED, subject, degraded)

        if subject is None or not str(subject).strip():
            return self._deny(DenyReason.TOKEN_INVALIDATED, subject, degraded)

        blocked = self.registry.probe_user_blocked(subject)
        if blocked.degraded:
            degraded.append("blocked")
        elif blocked.value:
            return self._deny(DenyReason.ACCOUNT_BLOCKED, subject, degraded)

        forced = self.registry.probe_forced_logout(subject)
        if forced.degraded:
            degraded.append("force_logout")
        elif forced.value is not None and self._issued_before(payload, forced.value):
            return self._deny(DenyReason.SESSION_TERMINATED, subject, degraded)

        if degraded:
            log.warning("access.fail_open subject=%s checks=%s", subject, ",".join(degraded))
        return Verdict.allow(payload, tuple(degraded))

    __call__ = evaluate

    def _issued_before(self, payload: Mapping[str, Any], cutoff: float) -> bool:
        """Tokens without a usable issue time are always covered by the marker."""
        issued_at = next(
            (payload[c] for c in self.issued_at_claims if payload.get(c) is not None), None
        )
        try:
            return float(issued_at) <= cutoff
        except (TypeError, ValueError):
            return True

    @staticmethod
    def _deny(reason: DenyReason, subject: Any, degraded: list[str]) -> Verdict:
        log.info("access.denied reason=%s subject=%s", reason.value, subject)
        return Verdict.deny(reason, tuple(degraded))

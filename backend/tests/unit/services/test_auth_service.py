"""Unit tests for AuthService with a stub token provider."""

from __future__ import annotations

import time
from datetime import timedelta

import pytest

from sessionguard.services._shared.errors import (
    AccountBlockedError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    ThrottledError,
)
from sessionguard.services._shared.ports.token_provider import StubTokenProvider
from sessionguard.services.access.dto import DenyReason
from sessionguard.services.access.evaluator import AUTH_TIME_CLAIM, AccessVerdictEvaluator
from sessionguard.services.auth.dto import ChangePasswordIn, LoginIn, LogoutIn
from sessionguard.services.auth.service import AuthService
from sessionguard.services.throttle.service import LoginAttemptThrottle
from tests.factories.user import UserFactory
from tests.helpers.auth import DEFAULT_PASSWORD
from tests.helpers.clock import ManualClock


@pytest.fixture
def clock():
    """Start at wall-clock time so stub token expiries line up with the registry."""
    return ManualClock(float(int(time.time())))


@pytest.fixture
def tokens():
    return StubTokenProvider()


@pytest.fixture
def service(session, registry, tokens, clock):
    return AuthService(
        token_provider=tokens,
        registry=registry,
        throttle=LoginAttemptThrottle(registry, max_attempts=5),
        clock=clock,
    )


@pytest.fixture
def evaluator(registry):
    return AccessVerdictEvaluator(registry)


def _login(service, email, password=DEFAULT_PASSWORD):
    return service.login(LoginIn(email=email, password=password))


# --------------------------------------------------------------------------- #
# Login
# --------------------------------------------------------------------------- #


def test_login_issues_token_with_scopes_and_auth_time(service, tokens, clock):
    user = UserFactory(admin=True)

    out = _login(service, user.email)

    claims = tokens.decode(out.access_token)
    assert claims["sub"] == str(user.id)
    assert claims["scopes"] == ["users:manage"]
    assert claims[AUTH_TIME_CLAIM] == pytest.approx(clock.now, abs=0.001)
    assert out.token_type == "Bearer"
    assert out.expires_in == 900


def test_login_accepts_email_in_any_case(service):
    user = UserFactory(email="mixed@example.com")
    assert _login(service, "  MIXED@Example.com ").access_token
    assert user.id is not None


def test_wrong_password_counts_a_failure(service, registry):
    user = UserFactory()

    with pytest.raises(InvalidCredentialsError):
        _login(service, user.email, "wrong-password")

    assert registry.get_login_attempts(user.email) == 1


def test_unknown_email_counts_a_failure(service, registry):
    with pytest.raises(InvalidCredentialsError):
        _login(service, "ghost@example.com")
    assert registry.get_login_attempts("ghost@example.com") == 1


def test_successful_login_resets_counter(service, registry):
    user = UserFactory()
    for _ in range(3):
        with pytest.raises(InvalidCredentialsError):
            _login(service, user.email, "nope")

    _login(service, user.email)

    assert registry.get_login_attempts(user.email) == 0


def test_threshold_blocks_even_correct_credentials(service, registry):
    user = UserFactory()
    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            _login(service, user.email, "nope")

    with pytest.raises(ThrottledError) as exc_info:
        _login(service, user.email)

    assert exc_info.value.attempts == 5
    # refusals do not count as further failures
    assert registry.get_login_attempts(user.email) == 5


def test_lockout_expires_with_the_window(service, clock):
    user = UserFactory()
    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            _login(service, user.email, "nope")

    clock.advance(900)

    assert _login(service, user.email).access_token


def test_blocked_flag_refuses_login_without_counting(service, registry):
    user = UserFactory(blocked=True)

    with pytest.raises(AccountBlockedError):
        _login(service, user.email)

    assert registry.get_login_attempts(user.email) == 0


def test_registry_block_refuses_login(service, registry):
    user = UserFactory()
    registry.block_user(user.id)

    with pytest.raises(AccountBlockedError):
        _login(service, user.email)


def test_inactive_user_cannot_log_in(service):
    user = UserFactory(is_active=False)
    with pytest.raises(InvalidCredentialsError):
        _login(service, user.email)


def test_login_works_while_store_is_down(service, memory_store):
    user = UserFactory()
    memory_store.close()
    assert _login(service, user.email).access_token


# --------------------------------------------------------------------------- #
# Logout
# --------------------------------------------------------------------------- #


def test_logout_blacklists_only_the_presented_token(service, evaluator, tokens):
    user = UserFactory()
    first = _login(service, user.email).access_token
    second = _login(service, user.email).access_token

    out = service.logout(LogoutIn(token=first))

    assert out.token_revoked and not out.sessions_terminated
    assert evaluator.evaluate(first, tokens.decode(first)).reason is DenyReason.TOKEN_INVALIDATED
    assert evaluator.evaluate(second, tokens.decode(second)).allowed


def test_logout_all_sessions_terminates_every_token(service, evaluator, tokens, clock):
    user = UserFactory()
    first = _login(service, user.email).access_token
    second = _login(service, user.email).access_token

    out = service.logout(LogoutIn(token=first, all_sessions=True))

    assert out.sessions_terminated
    verdict = evaluator.evaluate(second, tokens.decode(second))
    assert verdict.reason is DenyReason.SESSION_TERMINATED

    clock.advance(1)
    fresh = _login(service, user.email).access_token
    assert evaluator.evaluate(fresh, tokens.decode(fresh)).allowed


def test_logout_of_expired_token_writes_nothing(service, registry, tokens):
    user = UserFactory()
    stale = tokens.create_access_token(identity=user.id, expires_delta=timedelta(seconds=-5))

    out = service.logout(LogoutIn(token=stale))

    assert not out.token_revoked and not out.degraded
    assert registry.list_blacklisted_tokens() == []


def test_logout_reports_degraded_store(service, memory_store):
    user = UserFactory()
    token = _login(service, user.email).access_token
    memory_store.close()

    out = service.logout(LogoutIn(token=token))

    assert out.degraded and not out.token_revoked


# --------------------------------------------------------------------------- #
# Password change / whoami
# --------------------------------------------------------------------------- #


def test_change_password_terminates_existing_sessions(service, evaluator, tokens, clock):
    user = UserFactory()
    old = _login(service, user.email).access_token

    outcome = service.change_password(
        user.id, ChangePasswordIn(current_password=DEFAULT_PASSWORD, new_password="N3w-secret!")
    )

    assert outcome.value and outcome.ok
    assert evaluator.evaluate(old, tokens.decode(old)).reason is DenyReason.SESSION_TERMINATED
    clock.advance(1)
    assert _login(service, user.email, "N3w-secret!").access_token
    with pytest.raises(InvalidCredentialsError):
        _login(service, user.email, DEFAULT_PASSWORD)


def test_change_password_rejects_wrong_current_password(service, registry):
    user = UserFactory()
    with pytest.raises(InvalidCredentialsError):
        service.change_password(
            user.id, ChangePasswordIn(current_password="nope", new_password="N3w-secret!")
        )
    assert not registry.is_forced_logout(user.id)


def test_change_password_requires_a_different_password(service):
    user = UserFactory()
    with pytest.raises(ServiceError):
        service.change_password(
            user.id,
            ChangePasswordIn(current_password=DEFAULT_PASSWORD, new_password=DEFAULT_PASSWORD),
        )


def test_whoami(service):
    user = UserFactory(name="Ada", admin=False)
    out = service.whoami(user.id)
    assert (out.id, out.email, out.name, out.is_admin, out.scopes) == (
        user.id,
        user.email,
        "Ada",
        False,
        [],
    )


def test_whoami_unknown_user(service):
    with pytest.raises(NotFoundError):
        service.whoami(9999)

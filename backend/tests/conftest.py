"""Pytest fixtures: a fresh application, database and state store per test.

Every test gets its own in-memory SQLite database and its own in-process
state store, so neither user records nor credential state leak between
cases. Pure unit tests build stores and registries directly from the
``clock``-driven fixtures and never touch Flask.
"""

from __future__ import annotations

import os

import pytest

from sessionguard.core.config import TestingConfig
from sessionguard.core.extensions import STATE_STORE
from sessionguard.core.extensions import db as _db
from sessionguard.factory import create_app
from sessionguard.infra.memory.memory_state_store import InMemoryStateStore
from sessionguard.services.credentials.registry import CredentialStateRegistry
from tests.factories import SQLAlchemySession
from tests.helpers.clock import ManualClock


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - In-memory SQLite and in-process state store, sweeper disabled.
    - A signing key long enough for HS256 without warnings.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-only-signing-key-0123456789abcdef"
    LOG_LEVEL = "WARNING"
    LOGIN_MAX_ATTEMPTS = 5
    LOGIN_ATTEMPT_WINDOW = 900
    FORCE_LOGOUT_TTL = 86400


@pytest.fixture
def app():
    """Create the application with tables in place and an app context pushed."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()
    app.extensions[STATE_STORE].close()


@pytest.fixture
def session(app):
    """Flask-scoped SQLAlchemy session, also used by the factories."""
    SQLAlchemySession.set(_db.session)
    yield _db.session
    SQLAlchemySession.set(None)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def memory_store(clock):
    """In-memory store driven by the manual clock; closed after the test."""
    store = InMemoryStateStore(timeout=0.5, clock=clock)
    yield store
    store.close()


@pytest.fixture
def registry(memory_store, clock):
    return CredentialStateRegistry(
        memory_store, force_logout_ttl=86400, attempt_window=900, clock=clock
    )

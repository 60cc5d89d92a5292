"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import atexit
import logging

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app, g, request
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

from sessionguard.core.errors import as_problem, problem_response

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()

# Keys under ``app.extensions``
STATE_STORE = "state_store"
REGISTRY = "credential_registry"
EVALUATOR = "access_evaluator"
THROTTLE = "login_throttle"

#: Generic client-facing detail for every denied verdict.
SESSION_INVALID_MESSAGE = "Session is no longer valid"


def build_state_store(app: Flask):
    """
    Create the state store selected by ``STATE_STORE_URL``.

    An empty URL selects :class:`InMemoryStateStore`; any other value is a
    Redis URL. An unreachable Redis at startup is logged, not fatal: the
    registry degrades to fail-open until it comes back.
    """
    timeout = float(app.config.get("STATE_STORE_TIMEOUT", 0.25))
    url = app.config.get("STATE_STORE_URL") or ""
    if not url:
        from sessionguard.infra.memory.memory_state_store import InMemoryStateStore

        return InMemoryStateStore(timeout=timeout)

    from sessionguard.infra.redis.redis_state_store import RedisStateStore

    client = redis.Redis.from_url(url, socket_timeout=timeout, socket_connect_timeout=timeout)
    store = RedisStateStore(client)
    if not store.ping():
        log.warning("state_store.unreachable backend=redis")
    return store


def init_state(app: Flask, store=None) -> None:
    """
    Wire the credential-state core into ``app.extensions``.

    :param store: Pre-built store (tests); otherwise :func:`build_state_store`.
    """
    from sessionguard.services.access.evaluator import AccessVerdictEvaluator
    from sessionguard.services.credentials.registry import CredentialStateRegistry
    from sessionguard.services.throttle.service import LoginAttemptThrottle

    store = store if store is not None else build_state_store(app)
    registry = CredentialStateRegistry(
        store,
        force_logout_ttl=int(app.config["FORCE_LOGOUT_TTL"]),
        attempt_window=int(app.config["LOGIN_ATTEMPT_WINDOW"]),
    )
    app.extensions[STATE_STORE] = store
    app.extensions[REGISTRY] = registry
    app.extensions[EVALUATOR] = AccessVerdictEvaluator(registry)
    app.extensions[THROTTLE] = LoginAttemptThrottle(
        registry, max_attempts=int(app.config["LOGIN_MAX_ATTEMPTS"])
    )

    interval = int(app.config.get("STATE_STORE_SWEEP_INTERVAL", 0))
    if interval > 0:
        store.start_sweeper(interval)
        atexit.register(store.close)
    log.info("state_store.ready backend=%s sweep_interval=%s", store.backend, interval)


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, JWT and the credential-state core."""
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from sessionguard import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)
    init_state(app)


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------


def get_state_store():
    return current_app.extensions[STATE_STORE]


def get_registry():
    return current_app.extensions[REGISTRY]


def get_evaluator():
    return current_app.extensions[EVALUATOR]


def get_throttle():
    return current_app.extensions[THROTTLE]


# ---------------------------------------------------------------------------
# JWT callbacks
# ---------------------------------------------------------------------------


def presented_token() -> str:
    """Raw bearer token of the current request (empty when absent)."""
    header = request.headers.get(current_app.config.get("JWT_HEADER_NAME", "Authorization"), "")
    scheme = current_app.config.get("JWT_HEADER_TYPE", "Bearer")
    parts = header.split(None, 1)
    if len(parts) == 2 and parts[0] == scheme:
        return parts[1].strip()
    return ""


@jwt.token_in_blocklist_loader
def _token_denied(jwt_header: dict, jwt_payload: dict) -> bool:
    """Run the access verdict for every protected request."""
    verdict = get_evaluator().evaluate(presented_token(), jwt_payload)
    g.access_verdict = verdict
    return not verdict.allowed


def _unauthorized(message: str):
    return problem_response(as_problem(status=401, code="unauthorized", message=message)), 401


@jwt.revoked_token_loader
def _revoked(jwt_header: dict, jwt_payload: dict):
    return _unauthorized(SESSION_INVALID_MESSAGE)


@jwt.expired_token_loader
def _expired(jwt_header: dict, jwt_payload: dict):
    return _unauthorized("Token has expired")


@jwt.invalid_token_loader
def _invalid(reason: str):
    return _unauthorized("Invalid token")


@jwt.unauthorized_loader
def _missing(reason: str):
    return _unauthorized("Missing bearer token")

"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from sessionguard.core.errors import Forbidden, Unauthorized
from sessionguard.services._shared.base import BaseService
from sessionguard.services._shared.errors import ServiceError

F = TypeVar("F", bound=Callable[..., Any])

MANAGE_USERS_SCOPE = "users:manage"


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT that passes the access verdict."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_scope(required: str) -> Callable[[F], F]:
    """Ensure the verified JWT contains the requested scope claim."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            verify_jwt_in_request(optional=False)
            scopes = set(get_jwt().get("scopes", []))
            if required not in scopes:
                raise Forbidden("Insufficient scope")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def current_user_id() -> int:
    """Integer user id of the verified token subject."""
    subject = get_jwt_identity()
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise Unauthorized("Invalid token subject") from None


@contextmanager
def service_errors(service: BaseService) -> Iterator[None]:
    """Re-raise service-level errors as their HTTP counterparts."""
    try:
        yield
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""
    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]

# sessionguard/services/_shared/base.py
from __future__ import annotations

from sessionguard.core import errors as api_errors
from sessionguard.services._shared.errors import (
    AccountBlockedError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    ThrottledError,
)
from sessionguard.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide the read-write unit of work helper.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :returns: Translated exception ready to be re-raised.
        """
        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ThrottledError):
            return api_errors.TooManyRequests(str(exc))

        if isinstance(exc, InvalidCredentialsError):
            return api_errors.Unauthorized(str(exc))

        if isinstance(exc, AccountBlockedError):
            return api_errors.Forbidden(str(exc))

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        # Fallback: return untouched (bubbles up to the Flask handler)
        return exc

"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sessionguard.api.deps import json_response, timing
from sessionguard.core.extensions import db, get_state_store

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and state-store health.

    A failing state store reports ``degraded`` rather than failing the check:
    authentication keeps working (fail-open) while it is down.
    """
    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    store = get_state_store()
    store_status = "ok" if store.ping() else "fail"

    if db_status != "ok":
        status = "fail"
    elif store_status != "ok":
        status = "degraded"
    else:
        status = "ok"

    payload = {
        "status": status,
        "db": db_status,
        "state_store": {"status": store_status, "backend": store.backend},
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=503 if db_status != "ok" else 200)

"""Administrative endpoints over users' credential state."""

from __future__ import annotations

from flask import Blueprint, abort, current_app

from sessionguard.api.deps import (
    MANAGE_USERS_SCOPE,
    json_response,
    require_scope,
    service_errors,
    timing,
)
from sessionguard.core.extensions import get_registry
from sessionguard.schemas import StateSnapshotSchema, UserStateSchema
from sessionguard.services.admin.service import AdminService

bp = Blueprint("admin", __name__)

user_state_schema = UserStateSchema()
snapshot_schema = StateSnapshotSchema()


def _service() -> AdminService:
    return AdminService(registry=get_registry())


@bp.post("/users/<int:user_id>/block")
@require_scope(MANAGE_USERS_SCOPE)
@timing
def block_user(user_id: int):
    """Block a user and terminate all of their sessions."""
    service = _service()
    with service_errors(service):
        state = service.block_user(user_id)
    return json_response({"data": user_state_schema.dump(state)})


@bp.post("/users/<int:user_id>/unblock")
@require_scope(MANAGE_USERS_SCOPE)
@timing
def unblock_user(user_id: int):
    service = _service()
    with service_errors(service):
        state = service.unblock_user(user_id)
    return json_response({"data": user_state_schema.dump(state)})


@bp.post("/users/<int:user_id>/force-logout")
@require_scope(MANAGE_USERS_SCOPE)
@timing
def force_logout(user_id: int):
    """Terminate every session of a user without blocking the account."""
    service = _service()
    with service_errors(service):
        state = service.force_logout(user_id)
    return json_response({"data": user_state_schema.dump(state)})


@bp.get("/state")
@require_scope(MANAGE_USERS_SCOPE)
@timing
def state_snapshot():
    """Credential-state snapshot; only exposed with ``STATE_DEBUG_ENDPOINTS``."""
    if not current_app.config.get("STATE_DEBUG_ENDPOINTS", False):
        abort(404)
    snapshot = _service().state_snapshot()
    return json_response({"data": snapshot_schema.dump(snapshot)})

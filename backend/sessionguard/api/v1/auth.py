"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from sessionguard.api.deps import (
    current_user_id,
    json_response,
    require_auth,
    service_errors,
    timing,
)
from sessionguard.core.extensions import get_registry, get_throttle, presented_token
from sessionguard.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from sessionguard.schemas import (
    ChangePasswordSchema,
    LoginSchema,
    LogoutResponseSchema,
    LogoutSchema,
    TokenResponseSchema,
    WhoAmISchema,
)
from sessionguard.services.auth.dto import AuthTokenConfig, ChangePasswordIn, LoginIn, LogoutIn
from sessionguard.services.auth.service import AuthService

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
logout_schema = LogoutSchema()
change_password_schema = ChangePasswordSchema()
token_schema = TokenResponseSchema()
logout_response_schema = LogoutResponseSchema()
whoami_schema = WhoAmISchema()


def _service() -> AuthService:
    return AuthService(
        token_provider=JWTTokenProvider(),
        registry=get_registry(),
        throttle=get_throttle(),
        token_cfg=AuthTokenConfig(access_expires=current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]),
    )


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access token."""
    data = login_schema.load(request.get_json(silent=True) or {})
    service = _service()
    with service_errors(service):
        token = service.login(LoginIn(email=data["email"], password=data["password"]))
    return json_response({"data": token_schema.dump(token)})


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the presented token; optionally end every session of the caller."""
    data = logout_schema.load(request.get_json(silent=True) or {})
    service = _service()
    with service_errors(service):
        result = service.logout(
            LogoutIn(token=presented_token(), all_sessions=data["all_sessions"])
        )
    return json_response({"data": logout_response_schema.dump(result)})


@bp.get("/whoami")
@require_auth
@timing
def whoami():
    """Return the authenticated user profile."""
    service = _service()
    with service_errors(service):
        user = service.whoami(current_user_id())
    return json_response({"data": whoami_schema.dump(user)})


@bp.post("/change-password")
@require_auth
@timing
def change_password():
    """Change the caller's password; every existing session is terminated."""
    data = change_password_schema.load(request.get_json(silent=True) or {})
    service = _service()
    with service_errors(service):
        outcome = service.change_password(
            current_user_id(),
            ChangePasswordIn(
                current_password=data["current_password"], new_password=data["new_password"]
            ),
        )
    body = {"sessions_terminated": outcome.value, "degraded": outcome.degraded}
    return json_response({"data": body})

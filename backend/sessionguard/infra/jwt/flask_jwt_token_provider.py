# sessionguard/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from sessionguard.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access

        return cast(
            str,
            _create_access(
                identity=str(identity),
                additional_claims=additional_claims or {},
                expires_delta=expires_delta,
                fresh=True,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        return cast(dict[str, Any], decode_token(token))

    def get_subject(self, token: str) -> str:
        return str(self.decode(token)["sub"])

    def get_expires_at(self, token: str) -> datetime:
        exp = int(self.decode(token)["exp"])
        return datetime.fromtimestamp(exp, tz=UTC)

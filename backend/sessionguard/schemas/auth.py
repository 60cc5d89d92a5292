"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class LogoutSchema(Schema):
    """Optional logout body; ``all_sessions`` ends every session of the caller."""

    all_sessions = fields.Boolean(load_default=False)


class ChangePasswordSchema(Schema):
    current_password = fields.String(required=True, validate=validate.Length(min=1, max=128))
    new_password = fields.String(required=True, validate=validate.Length(min=8, max=128))

    @validates_schema
    def _differs(self, data, **kwargs):
        if data.get("current_password") == data.get("new_password"):
            raise ValidationError("New password must differ.", field_name="new_password")


class TokenResponseSchema(Schema):
    """Response payload containing an access token."""

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)


class LogoutResponseSchema(Schema):
    token_revoked = fields.Boolean()
    sessions_terminated = fields.Boolean()
    degraded = fields.Boolean()


class WhoAmISchema(Schema):
    """Response payload exposing identity details for the authenticated user."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    is_admin = fields.Boolean()
    scopes = fields.List(fields.String())

"""Schemas for administrative credential-state endpoints."""

from __future__ import annotations

from marshmallow import Schema, fields


class UserStateSchema(Schema):
    """Result of block / unblock / force-logout."""

    user_id = fields.Integer(required=True)
    blocked = fields.Boolean()
    sessions_terminated = fields.Boolean()
    degraded = fields.Boolean()


class StoreStatsSchema(Schema):
    backend = fields.String()
    total = fields.Integer()
    with_expiry = fields.Integer()
    without_expiry = fields.Integer()


class RegistryStatsSchema(Schema):
    blocked_users = fields.Integer()
    forced_logout_users = fields.Integer()
    blacklisted_tokens = fields.Integer()
    login_attempt_counters = fields.Integer()
    store = fields.Nested(StoreStatsSchema, allow_none=True)
    degraded = fields.Boolean()


class StateSnapshotSchema(Schema):
    """Operational snapshot; tokens appear only as fingerprints."""

    blocked_users = fields.List(fields.String())
    forced_logout_users = fields.List(fields.String())
    blacklisted_tokens = fields.List(fields.String())
    stats = fields.Nested(RegistryStatsSchema, allow_none=True)

"""Flask CLI commands for inspecting and operating the credential state store."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from sessionguard.core.extensions import get_registry, get_state_store
from sessionguard.services._shared.errors import NotFoundError
from sessionguard.services._shared.ports.state_store import StoreUnavailable
from sessionguard.services.admin.dto import UserStateOut
from sessionguard.services.admin.service import AdminService

LOGGER = logging.getLogger(__name__)


def _echo_state(state: UserStateOut) -> None:
    click.echo(
        f"user={state.user_id} blocked={state.blocked} "
        f"sessions_terminated={state.sessions_terminated}"
    )
    if state.degraded:
        click.echo("warning: state store unavailable, change only partially recorded", err=True)


@click.group("state")
def state_cli() -> None:
    """Credential state store commands."""


@state_cli.command("stats")
@with_appcontext
def stats_command() -> None:
    """Print counts of blocked users, forced logouts, blacklisted tokens and counters."""
    stats = get_registry().stats()
    click.echo("Credential state:")
    click.echo(f"  blocked_users           {stats.blocked_users:>6}")
    click.echo(f"  forced_logout_users     {stats.forced_logout_users:>6}")
    click.echo(f"  blacklisted_tokens      {stats.blacklisted_tokens:>6}")
    click.echo(f"  login_attempt_counters  {stats.login_attempt_counters:>6}")
    if stats.store is not None:
        click.echo(
            f"Store ({stats.store.backend}): total={stats.store.total} "
            f"with_expiry={stats.store.with_expiry} without_expiry={stats.store.without_expiry}"
        )
    if stats.degraded:
        raise click.ClickException("State store unavailable; counts are incomplete.")


@state_cli.command("sweep")
@with_appcontext
def sweep_command() -> None:
    """Remove expired entries now instead of waiting for the sweeper."""
    try:
        removed = get_state_store().sweep()
    except StoreUnavailable as exc:
        raise click.ClickException(f"Sweep failed: {exc}") from exc
    click.echo(f"Removed {removed} expired entries.")


@state_cli.command("block")
@click.argument("user_id", type=int)
@with_appcontext
def block_command(user_id: int) -> None:
    """Block USER_ID and terminate all of their sessions."""
    try:
        state = AdminService(registry=get_registry()).block_user(user_id)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    LOGGER.info("cli.block user_id=%s", user_id)
    _echo_state(state)


@state_cli.command("unblock")
@click.argument("user_id", type=int)
@with_appcontext
def unblock_command(user_id: int) -> None:
    """Lift the block on USER_ID."""
    try:
        state = AdminService(registry=get_registry()).unblock_user(user_id)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    LOGGER.info("cli.unblock user_id=%s", user_id)
    _echo_state(state)

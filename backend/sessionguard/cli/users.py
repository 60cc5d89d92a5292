"""Flask CLI commands for managing user records."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from sessionguard.core.extensions import db
from sessionguard.models import User
from sessionguard.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


@click.group("users")
def users_cli() -> None:
    """User record commands."""


@users_cli.command("create")
@click.argument("email")
@click.option("--name", required=True, help="Display name.")
@click.option("--admin", is_flag=True, help="Grant the users:manage scope.")
@click.password_option()
@with_appcontext
def create_command(email: str, name: str, admin: bool, password: str) -> None:
    """Create a user that can log in with EMAIL."""
    db.create_all()
    with SQLAlchemyUnitOfWork() as uow:
        if uow.users.get_by_email(email) is not None:
            raise click.ClickException(f"User already exists: {email}")
        try:
            user = uow.users.add(User(email=email, name=name, password=password, is_admin=admin))
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        user_id = user.id
    click.echo(f"Created user {user_id} ({email}){' [admin]' if admin else ''}")

"""Flask CLI commands for schema bootstrap and account provisioning."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from authcore.core.auth import get_auth_service
from authcore.core.extensions import db
from authcore.models.user import Role
from authcore.services._shared.errors import PersistenceError, ServiceError
from authcore.services.auth.dto import RegisterIn

LOGGER = logging.getLogger(__name__)


def _ensure_non_production() -> None:
    """Abort schema-altering commands when running in production."""
    if str(current_app.config.get("APP_ENV", "")).lower() == "production":
        raise click.UsageError("This command is restricted to non-production environments.")


@click.group("users")
def users_cli() -> None:
    """Account and schema management commands."""


@users_cli.command("init-db")
@click.option("--drop", is_flag=True, help="Drop existing tables first.")
@click.option("--yes", is_flag=True, help="Skip the destructive confirmation prompt.")
@with_appcontext
def init_db_command(drop: bool, yes: bool) -> None:
    """Create the database tables (development and testing only)."""
    _ensure_non_production()
    if drop:
        if not yes:
            click.confirm("This will DROP all application tables. Continue?", abort=True)
        LOGGER.info("Dropping database schema...")
        db.session.remove()
        db.drop_all()
    LOGGER.info("Creating database schema...")
    db.create_all()
    click.echo("Database schema ready.")


@users_cli.command("set-role")
@click.argument("username")
@click.argument("role", type=click.Choice([r.value for r in Role], case_sensitive=True))
@with_appcontext
def set_role_command(username: str, role: str) -> None:
    """Assign ROLE to USERNAME."""
    try:
        user = get_auth_service().assign_role(username, Role(role))
    except (ServiceError, PersistenceError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{user.username} is now {user.role.value}.")


@users_cli.command("create")
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role], case_sensitive=True),
    default=Role.USER.value,
    show_default=True,
)
@with_appcontext
def create_command(username: str, password: str, role: str) -> None:
    """Register USERNAME and optionally grant a role in one step."""
    service = get_auth_service()
    try:
        user = service.register(RegisterIn(username=username, password=password))
    except (ServiceError, PersistenceError) as exc:
        raise click.ClickException(str(exc)) from exc
    if role != user.role.value:
        try:
            user = service.assign_role(user.username, Role(role))
        except (ServiceError, PersistenceError) as exc:
            raise click.ClickException(
                f"Created {user.username} (id={user.id}) with role {user.role.value}, "
                f"but granting {role} failed: {exc}. "
                f"Retry with 'flask users set-role {user.username} {role}'."
            ) from exc
    click.echo(f"Created {user.username} (id={user.id}, role={user.role.value}).")

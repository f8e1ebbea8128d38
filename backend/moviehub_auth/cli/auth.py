"""Flask CLI commands for operator account and session management."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from moviehub_auth.core.extensions import get_auth_components
from moviehub_auth.models import AccountRole
from moviehub_auth.services import AccountAdminService, RegisterIn
from moviehub_auth.services._shared.errors import (
    EmailAlreadyExistsError,
    NotFoundError,
    StoreUnavailableError,
)

LOGGER = logging.getLogger(__name__)


def _admin_service() -> AccountAdminService:
    components = get_auth_components()
    return AccountAdminService(hasher=components.hasher, refresh_store=components.refresh_store)


@click.group("auth")
def auth_cli() -> None:
    """Account and refresh-session administration."""


@auth_cli.command("create-admin")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--first-name", default="Admin", show_default=True)
@click.option("--last-name", default="User", show_default=True)
@with_appcontext
def create_admin_command(email: str, password: str, first_name: str, last_name: str) -> None:
    """Create an administrator account."""
    dto = RegisterIn(email=email, password=password, first_name=first_name, last_name=last_name)
    try:
        account = _admin_service().create_account(dto, role=AccountRole.ADMIN)
    except EmailAlreadyExistsError as exc:
        raise click.ClickException(f"An account already uses {email}.") from exc
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    click.echo(f"Created admin {account.email} ({account.id})")


@auth_cli.command("disable")
@click.argument("email")
@with_appcontext
def disable_command(email: str) -> None:
    """Disable an account and revoke all of its sessions."""
    try:
        revoked = _admin_service().disable_account(email)
    except NotFoundError as exc:
        raise click.ClickException(f"No account for {email}.") from exc
    click.echo(f"Disabled {email}; revoked {revoked} session(s)")


@auth_cli.command("delete")
@click.argument("email")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@with_appcontext
def delete_command(email: str, yes: bool) -> None:
    """Soft-delete an account and revoke all of its sessions."""
    if not yes:
        click.confirm(f"Delete account {email}?", abort=True)
    try:
        revoked = _admin_service().delete_account(email)
    except NotFoundError as exc:
        raise click.ClickException(f"No account for {email}.") from exc
    click.echo(f"Deleted {email}; revoked {revoked} session(s)")


@auth_cli.command("purge-tokens")
@with_appcontext
def purge_tokens_command() -> None:
    """Garbage-collect expired refresh tokens."""
    try:
        purged = _admin_service().purge_expired_tokens()
    except StoreUnavailableError as exc:
        raise click.ClickException(f"Refresh token store unavailable ({exc.backend}).") from exc
    LOGGER.info("purged expired refresh tokens", extra={"event": "auth.tokens_purged"})
    click.echo(f"Purged {purged} expired refresh token(s)")

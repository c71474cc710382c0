from __future__ import annotations

import click
from flask import current_app


@click.group("roles")
def roles_cli():
    """Role catalog commands."""
    pass


@roles_cli.command("seed")
def seed_roles_command():
    """Insert the default admin/manager/user/viewer roles if missing."""
    from .services.roles import seed_roles

    created = seed_roles()
    click.echo(f"{created} role(s) created")


@click.group("invitations")
def invitations_cli():
    """Invitation maintenance commands."""
    pass


@invitations_cli.command("expire")
def expire_invitations_command():
    """Mark pending invitations past their expiry as expired."""
    from .services.invitations import expire_stale_invitations

    current_app.logger.info("Expiring stale invitations via CLI")
    count = expire_stale_invitations()
    click.echo(f"{count} invitation(s) expired")

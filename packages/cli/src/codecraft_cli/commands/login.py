"""Login command: record the signed-in user."""

from __future__ import annotations

import click
from rich.console import Console

from codecraft_cli.context import get_store, operation_errors, require_identity
from codecraft_core.users import upsert_user

console = Console()


@click.command("login")
@click.option("--email", required=True, envvar="CODECRAFT_EMAIL", help="Contact email of the signed-in user.")
@click.pass_context
def login_cmd(ctx, email: str):
    """Create your user record, or update its email if it changed.

    Run this once per sign-in before saving reviews; every other command
    looks you up by the same identity.
    """
    identity = require_identity(ctx)
    with operation_errors():
        user_id = upsert_user(get_store(ctx), identity, email)
    console.print(f"[green]Signed in as {email}[/green] [dim](user {user_id})[/dim]")

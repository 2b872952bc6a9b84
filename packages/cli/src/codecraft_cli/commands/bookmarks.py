"""Bookmark commands: save, unsave and list reviews."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from codecraft_cli.context import format_ms, get_store, operation_errors, require_identity
from codecraft_core.bookmarks import add_bookmark, list_saved_reviews, remove_bookmark

console = Console()


@click.group("bookmark")
def bookmark_group():
    """Manage your saved reviews."""


@bookmark_group.command("add")
@click.argument("review_id")
@click.option("--note", "notes", default=None, help="Free-text note stored with the bookmark.")
@click.pass_context
def add_cmd(ctx, review_id: str, notes: str | None):
    """Save REVIEW_ID to your list. The note can't be edited later."""
    identity = require_identity(ctx)
    with operation_errors():
        bookmark_id = add_bookmark(get_store(ctx), identity, review_id, notes=notes)
    console.print(f"[green]Saved review {review_id}[/green] [dim]({bookmark_id})[/dim]")


@bookmark_group.command("remove")
@click.argument("review_id")
@click.pass_context
def remove_cmd(ctx, review_id: str):
    """Remove REVIEW_ID from your saved list."""
    identity = require_identity(ctx)
    with operation_errors():
        remove_bookmark(get_store(ctx), identity, review_id)
    console.print(f"[green]Removed review {review_id} from your saved list[/green]")


@bookmark_group.command("list")
@click.pass_context
def list_cmd(ctx):
    """List your saved reviews, most recently saved first."""
    identity = require_identity(ctx)
    with operation_errors():
        saved = list_saved_reviews(get_store(ctx), identity)

    if not saved:
        console.print("[yellow]No saved reviews.[/yellow]")
        return

    table = Table(title="Saved Reviews", show_header=True, header_style="bold cyan")
    table.add_column("Review", style="dim", no_wrap=True)
    table.add_column("Repository", style="bold")
    table.add_column("Issues", justify="right")
    table.add_column("Saved", width=18)
    table.add_column("Note", max_width=40)
    for entry in saved:
        table.add_row(
            entry.review_id,
            entry.review.repo_name,
            str(entry.review.review_data.summary.total_issues),
            format_ms(entry.saved_at),
            entry.notes or "",
        )
    console.print(table)

"""Stats and notifications commands: roll-ups across your review history."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from codecraft_cli.context import format_ms, get_store, operation_errors, require_identity
from codecraft_core.stats import get_notification_count, get_review_stats

console = Console()


@click.command("stats")
@click.option("--json", "as_json", is_flag=True, help="Print the statistics as JSON.")
@click.pass_context
def stats_cmd(ctx, as_json: bool):
    """Show dashboard statistics across all of your reviews.

    Reports issue totals by severity, the average code quality score, how
    many reviews you've saved and your five most recent analyses.
    """
    identity = require_identity(ctx)
    with operation_errors():
        stats = get_review_stats(get_store(ctx), identity)

    if as_json:
        click.echo(json.dumps(stats.to_dict(), indent=2))
        return

    if stats.total_reviews == 0:
        console.print("[yellow]No reviews yet. Save one with `codecraft save-review`.[/yellow]")
        return

    # --- Summary ---
    console.print("\n[bold]Review stats[/bold]")
    console.print(f"  Total reviews:   {stats.total_reviews}")
    console.print(f"  Issues found:    {stats.total_issues_found}")
    console.print(f"  Avg quality:     {stats.avg_code_quality}/100")
    console.print(f"  Saved reviews:   {stats.saved_reviews}")

    # --- Severity breakdown ---
    sev_table = Table(title="Severity Breakdown", show_header=True)
    sev_table.add_column("Severity", style="bold")
    sev_table.add_column("Count", justify="right")
    sev_table.add_column("% of total", justify="right")
    total = stats.total_issues_found
    for sev, count, style in (
        ("critical", stats.critical_issues, "red"),
        ("major", stats.major_issues, "yellow"),
        ("minor", stats.minor_issues, "blue"),
    ):
        pct = f"{count / total * 100:.1f}%" if total else "0%"
        sev_table.add_row(f"[{style}]{sev}[/{style}]", str(count), pct)
    console.print(sev_table)

    # --- Recent activity ---
    activity = Table(title="Recent Activity", show_header=True)
    activity.add_column("Repository")
    activity.add_column("Issues", justify="right")
    activity.add_column("Analysed", width=18)
    for item in stats.recent_activity:
        activity.add_row(item.repo_name, str(item.issues_found), format_ms(item.created_at))
    console.print(activity)


@click.command("notifications")
@click.pass_context
def notifications_cmd(ctx):
    """Show reviews and critical issues from the last 24 hours."""
    identity = require_identity(ctx)
    with operation_errors():
        counts = get_notification_count(get_store(ctx), identity)

    if counts.total_notifications == 0:
        console.print("[dim]Nothing new in the last 24 hours.[/dim]")
        return
    console.print(
        f"[bold]{counts.total_notifications}[/bold] notifications: "
        f"{counts.new_reviews} new review(s), [red]{counts.critical_issues} critical issue(s)[/red]"
    )

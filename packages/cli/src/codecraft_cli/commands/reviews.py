"""Review commands: save an analysis, list reviews, inspect one review or repository."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from codecraft_cli.context import (
    SEVERITY_STYLE,
    format_ago,
    format_ms,
    get_store,
    operation_errors,
    require_identity,
)
from codecraft_core.reviews import get_repo_data, get_review, list_recent_reviews, list_user_reviews, upsert_review

console = Console()


@click.command("save-review")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--repo", "repo_name", required=True, help="GitHub repository (owner/name).")
@click.option("--url", "repo_url", default=None, help="Repository URL. Defaults to https://github.com/<repo>.")
@click.pass_context
def save_review_cmd(ctx, payload_file: str, repo_name: str, repo_url: str | None):
    """Store the analysis in PAYLOAD_FILE (JSON) for a repository.

    Re-running for the same repository replaces the previous analysis.
    """
    identity = require_identity(ctx)
    try:
        with open(payload_file) as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON ({e})", param_hint="PAYLOAD_FILE")

    with operation_errors():
        review_id = upsert_review(
            get_store(ctx),
            identity,
            repo_name,
            repo_url or f"https://github.com/{repo_name}",
            payload,
        )
    console.print(f"[green]Saved review for {repo_name}[/green] [dim]({review_id})[/dim]")


@click.command("reviews")
@click.option("--recent", is_flag=True, help="Only show the most recently analysed repositories.")
@click.option(
    "--limit",
    "-n",
    type=int,
    default=None,
    help="How many recent reviews to show. Implies --recent. [default: recent_limit from config]",
)
@click.pass_context
def reviews_cmd(ctx, recent: bool, limit: int | None):
    """List your reviews, most recently analysed first."""
    identity = require_identity(ctx)
    store = get_store(ctx)
    with operation_errors():
        if recent or limit is not None:
            limit = limit if limit is not None else ctx.obj["config"]["recent_limit"]
            rows = [(r.review, r.time_ago) for r in list_recent_reviews(store, identity, limit=limit)]
        else:
            rows = [(r, None) for r in list_user_reviews(store, identity)]

    if not rows:
        console.print("[yellow]No reviews found.[/yellow]")
        return

    table = Table(title="Reviews", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Repository", style="bold")
    table.add_column("Issues", justify="right")
    table.add_column("Critical", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Analysed", width=18)

    for review, time_ago in rows:
        summary = review.review_data.summary
        score = summary.code_quality_score
        table.add_row(
            review.id,
            review.repo_name,
            str(summary.total_issues),
            f"[red]{summary.critical_issues}[/red]" if summary.critical_issues else "0",
            "-" if score is None else str(score),
            format_ago(time_ago) if time_ago is not None else format_ms(review.created_at),
        )
    console.print(table)


@click.command("show")
@click.argument("review_id")
@click.option("--json", "as_json", is_flag=True, help="Print the review as JSON.")
@click.pass_context
def show_cmd(ctx, review_id: str, as_json: bool):
    """Show one of your reviews with all of its issues."""
    identity = require_identity(ctx)
    with operation_errors():
        detail = get_review(get_store(ctx), identity, review_id)

    if as_json:
        click.echo(json.dumps(detail.to_dict(), indent=2))
        return

    data = detail.review_data
    summary = data.summary
    console.print(f"\n[bold]{detail.repo_name}[/bold]  [dim]{detail.repo_url}[/dim]")
    console.print(f"  Analysed:   {format_ms(detail.created_at)}  (tools: {', '.join(data.tools_used) or '-'})")
    console.print(
        f"  Issues:     {summary.total_issues} "
        f"([red]{summary.critical_issues} critical[/red], "
        f"[yellow]{summary.major_issues} major[/yellow], "
        f"[blue]{summary.minor_issues} minor[/blue])"
    )
    if summary.code_quality_score is not None:
        console.print(f"  Quality:    {summary.code_quality_score}/100")
    if detail.is_saved:
        note = f": {detail.saved_notes}" if detail.saved_notes else ""
        console.print(f"  [green]Saved[/green]{note}")

    if data.issues:
        table = Table(title="Issues", show_header=True)
        table.add_column("Severity", style="bold")
        table.add_column("Location")
        table.add_column("Category")
        table.add_column("Title")
        for issue in data.issues:
            style = SEVERITY_STYLE.get(issue.severity.value, "white")
            table.add_row(
                f"[{style}]{issue.severity.value}[/{style}]",
                f"{issue.file}:{issue.line}",
                issue.category,
                issue.title,
            )
        console.print(table)

    if data.external_errors:
        table = Table(title="Tracked Errors", show_header=True)
        table.add_column("Level")
        table.add_column("Title")
        table.add_column("Events", justify="right")
        table.add_column("Last Seen")
        for error in data.external_errors:
            table.add_row(error.level, error.title, str(error.occurrence_count), error.last_seen)
        console.print(table)


@click.command("repo")
@click.argument("repo_name")
@click.pass_context
def repo_cmd(ctx, repo_name: str):
    """Show the latest analysis snapshot for REPO_NAME (owner/name)."""
    identity = require_identity(ctx)
    with operation_errors():
        snapshot = get_repo_data(get_store(ctx), identity, repo_name)

    if snapshot is None:
        console.print(f"[yellow]No review found for {repo_name}.[/yellow]")
        return

    badge = " [bold magenta]NEW[/bold magenta]" if snapshot.has_new_issues else ""
    console.print(f"\n[bold]{repo_name}[/bold]{badge}")
    console.print(f"  Issues:        {snapshot.issue_count}")
    console.print(f"  Critical:      {snapshot.critical_count}")
    console.print(f"  Last analysis: {format_ms(snapshot.last_analysis)}")

"""Helpers shared by the subcommands: store/identity lookup and error mapping."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone

import click

from codecraft_core.errors import CodeCraftError

SEVERITY_STYLE = {"critical": "red", "major": "yellow", "minor": "blue"}


def get_store(ctx: click.Context):
    return ctx.obj["store"]


def require_identity(ctx: click.Context) -> str:
    identity = ctx.obj["config"].get("identity")
    if not identity:
        raise click.UsageError("No identity given. Pass --identity or set CODECRAFT_IDENTITY.")
    return identity


@contextmanager
def operation_errors():
    """Turn operation failures into a clean non-zero exit with the failure message."""
    try:
        yield
    except CodeCraftError as e:
        raise click.ClickException(str(e)) from e


def format_ms(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def format_ago(elapsed_ms: int) -> str:
    minutes = max(0, elapsed_ms) // 60_000
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 24 * 60:
        return f"{minutes // 60}h ago"
    return f"{minutes // (24 * 60)}d ago"

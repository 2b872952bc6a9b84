"""CLI entry point for codecraft.

Commands:
  login          record the signed-in user (creates or refreshes the User)
  save-review    store an analysis payload for a repository
  reviews        list your reviews, optionally only the most recent
  show           one review with its issues and bookmark state
  repo           latest analysis snapshot for one repository
  bookmark       add, remove and list saved reviews
  stats          dashboard statistics across all your reviews
  notifications  reviews and critical issues from the last 24 hours
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from codecraft_cli.commands.bookmarks import bookmark_group
from codecraft_cli.commands.login import login_cmd
from codecraft_cli.commands.reviews import repo_cmd, reviews_cmd, save_review_cmd, show_cmd
from codecraft_cli.commands.stats import notifications_cmd, stats_cmd
from codecraft_core.config import STORE_TYPES

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .codecraft.yml settings.

    Store selection:
      store: sqlite → SQLiteStore (store_path, default .codecraft.db)
      store: gist   → GistStore   (requires gist_id and GITHUB_TOKEN)
      store: memory → MemoryStore (nothing survives the process)

    This factory lives in cli.py so neither codecraft_core nor
    codecraft_store know about the CLI config format.
    """
    store_type = config.get("store", "sqlite")

    if store_type == "gist":
        from codecraft_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            raise click.UsageError("The gist store requires gist_id in .codecraft.yml and GITHUB_TOKEN to be set.")
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "memory":
        from codecraft_store.memory import MemoryStore

        console.print("[yellow]Using the in-memory store: nothing will be saved.[/yellow]")
        return MemoryStore()

    from codecraft_store.sqlite import SQLiteStore

    return SQLiteStore(db_path=config.get("store_path", ".codecraft.db"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("codecraft"),
    prog_name="codecraft",
)
@click.option(
    "--config",
    "config_path",
    default=".codecraft.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="CODECRAFT_CONFIG",
)
@click.option(
    "--identity",
    default=None,
    help="Identity-provider subject id of the signed-in user. [env: CODECRAFT_IDENTITY]",
)
@click.option(
    "--store",
    "store_type",
    type=click.Choice(STORE_TYPES),
    default=None,
    help="Storage backend. Overrides config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, identity: str | None, store_type: str | None, verbose: bool):
    """Code review history and dashboard statistics for your repositories."""
    from codecraft_core.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path, cli_overrides={"identity": identity, "store": store_type})
    except ValueError as e:
        raise click.UsageError(str(e))

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(login_cmd)
main.add_command(save_review_cmd)
main.add_command(reviews_cmd)
main.add_command(show_cmd)
main.add_command(repo_cmd)
main.add_command(bookmark_group)
main.add_command(stats_cmd)
main.add_command(notifications_cmd)

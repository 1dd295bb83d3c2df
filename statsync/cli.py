from __future__ import annotations

import logging

import typer

from . import __version__
from .commands.stats_cmds import (
    channel_cmd,
    init_db_cmd,
    overview_cmd,
    prune_cmd,
    record_cmd,
    show_cmd,
)
from .config import load_config
from .stats import StatsSynchronizer

app = typer.Typer(help="statsync: bucketed usage counters flushed to SQLite")


def _sync(db_path: str | None) -> StatsSynchronizer:
    cfg = load_config()
    if db_path:
        cfg.db_path = db_path
    return StatsSynchronizer.from_config(cfg)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def init_db(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Create the SQLite database and stats tables (no-op if they already exist)."""
    init_db_cmd(sync_from_path=_sync, db_path=db_path)


@app.command()
def show(
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    as_json: bool = typer.Option(False, "--json", help="Print the snapshot as JSON"),
) -> None:
    """Show recent daily/hourly rows, long-term history and known channels."""
    show_cmd(sync_from_path=_sync, db_path=db_path, as_json=as_json)


@app.command()
def overview(
    db_path: str = typer.Option(None, help="Path to SQLite database"),
    active_window_s: int = typer.Option(None, help="Seconds since last call to count as active"),
) -> None:
    """Show user/channel counts and storage size."""
    window = active_window_s or load_config().active_window_s
    overview_cmd(sync_from_path=_sync, db_path=db_path, active_window_s=window)


@app.command()
def record(
    field: str,
    table: str = typer.Option("hourly", help="hourly, daily or longterm"),
    key: str = typer.Option(None, help="Sub-key for daily counters (e.g. command name)"),
    count: int = typer.Option(1, help="Number of events to record"),
    channel: str = typer.Option(None, help="Also record activity for this channel id"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Record events for one counter and upload them immediately."""
    record_cmd(
        sync_from_path=_sync,
        db_path=db_path,
        field=field,
        table=table,
        key=key,
        count=count,
        channel=channel,
    )


@app.command()
def prune(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Delete hourly/daily rows older than the retention window."""
    prune_cmd(sync_from_path=_sync, db_path=db_path)


@app.command()
def channel(
    channel_id: str,
    name: str = typer.Option(None, help="Display name"),
    assignee: str = typer.Option(None, help="Assigned bot id"),
    unassign: bool = typer.Option(False, "--unassign", help="Clear the assigned bot"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Add or update a channel in the roster."""
    channel_cmd(
        sync_from_path=_sync,
        db_path=db_path,
        channel_id=channel_id,
        name=name,
        assignee=assignee,
        unassign=unassign,
    )


if __name__ == "__main__":
    app()

from __future__ import annotations

import json
from typing import Any

import typer
from rich import print

from ..stats import overview as stats_overview
from ..stats.roster import upsert_channel

TABLE_CHOICES = ("hourly", "daily", "longterm")


def _format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / 1024 / 1024:.1f} MB"
    return f"{size / 1024 / 1024 / 1024:.1f} GB"


def _format_value(value: Any) -> str:
    if isinstance(value, dict):
        if not value:
            return "-"
        return ", ".join(f"{key}={count}" for key, count in sorted(value.items()))
    return str(value)


def init_db_cmd(*, sync_from_path, db_path: str | None) -> None:
    """Create the SQLite database and stats tables (no-op if they already exist)."""

    sync = sync_from_path(db_path)
    try:
        row = sync.conn.execute("PRAGMA database_list").fetchone()
        print(f"Initialized database at {row['file'] if row else db_path}")
    finally:
        sync.close()


def show_cmd(*, sync_from_path, db_path: str | None, as_json: bool) -> None:
    sync = sync_from_path(db_path)
    try:
        snapshot = sync.download()
    finally:
        sync.close()

    if as_json:
        typer.echo(json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2))
        return

    sections = (
        ("Daily", snapshot.daily),
        ("Hourly", snapshot.hourly),
        ("Long-term", snapshot.longterm),
    )
    for title, rows in sections:
        print(f"[bold]{title}[/bold]")
        if not rows:
            print("- No rows recorded yet")
            continue
        for row in rows:
            values = ", ".join(
                f"{key}: {_format_value(value)}" for key, value in row.items() if key != "time"
            )
            print(f"- {row['time']}  {values}")
    print("[bold]Channels[/bold]")
    if not snapshot.channels:
        print("- No channels known")
    for channel in snapshot.channels:
        assignee = channel.get("assignee") or "unassigned"
        print(f"- {channel['id']} ({channel.get('name') or '?'}) -> {assignee}")


def overview_cmd(*, sync_from_path, db_path: str | None, active_window_s: int) -> None:
    sync = sync_from_path(db_path)
    try:
        data = stats_overview(sync.conn, active_window_s=active_window_s)
    finally:
        sync.close()

    print("[bold]Overview[/bold]")
    print(f"- Users: {data['all_users']} (active {data['active_users']})")
    print(f"- Channels: {data['all_channels']} (assigned {data['active_channels']})")
    print(f"- Storage: {_format_bytes(data['storage_size'])}")


def record_cmd(
    *,
    sync_from_path,
    db_path: str | None,
    field: str,
    table: str,
    key: str | None,
    count: int,
    channel: str | None,
) -> None:
    """Increment one counter and upload immediately."""

    if table not in TABLE_CHOICES:
        print(f"[red]Unknown table {table!r}; use one of {', '.join(TABLE_CHOICES)}[/red]")
        raise typer.Exit(code=1)
    if count < 1:
        print("[red]--count must be positive[/red]")
        raise typer.Exit(code=1)
    if table == "daily" and key is None:
        print("[red]--key is required for daily counters[/red]")
        raise typer.Exit(code=1)

    sync = sync_from_path(db_path)
    try:
        store = {"hourly": sync.hourly, "daily": sync.daily, "longterm": sync.longterm}[table]
        if field not in store.fields:
            print(f"[red]Unknown {table} field {field!r}; known: {', '.join(store.fields)}[/red]")
            raise typer.Exit(code=1)
        for _ in range(count):
            if table == "daily":
                sync.add_daily(field, key)
            if channel:
                sync.record_channel_activity(channel)
        if table == "hourly":
            sync.add_hourly(field, count)
        elif table == "longterm":
            sync.add_longterm(field, count)
        sync.upload()
    finally:
        sync.close()
    print(f"[green]Recorded {count} x {field} in {table}[/green]")


def prune_cmd(*, sync_from_path, db_path: str | None) -> None:
    sync = sync_from_path(db_path)
    try:
        removed = sync.prune()
    finally:
        sync.close()
    print(f"Pruned {removed} row(s)")


def channel_cmd(
    *,
    sync_from_path,
    db_path: str | None,
    channel_id: str,
    name: str | None,
    assignee: str | None,
    unassign: bool = False,
) -> None:
    sync = sync_from_path(db_path)
    try:
        upsert_channel(sync.conn, channel_id, name=name, assignee=assignee, unassign=unassign)
    finally:
        sync.close()
    print(f"Saved channel {channel_id}")

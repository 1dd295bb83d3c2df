from __future__ import annotations

import datetime as dt
import sqlite3
from typing import Any

from .. import db

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def upsert_channel(
    conn: sqlite3.Connection,
    channel_id: str,
    *,
    name: str | None = None,
    assignee: str | None = None,
    unassign: bool = False,
) -> None:
    """Create or update a channel; omitted fields keep their stored values."""

    if unassign:
        assignee = None
    conn.execute(
        """
        INSERT INTO channel(id, name, assignee) VALUES (?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            name = COALESCE(excluded.name, channel.name),
            assignee = CASE WHEN ? THEN NULL
                ELSE COALESCE(excluded.assignee, channel.assignee) END
        """,
        (channel_id, name, assignee, int(unassign)),
    )
    conn.commit()


def touch_user(
    conn: sqlite3.Connection,
    user_id: str,
    *,
    name: str | None = None,
    now: dt.datetime | None = None,
) -> None:
    last_call = (now or dt.datetime.now()).strftime(TIME_FORMAT)
    conn.execute(
        """
        INSERT INTO "user"(id, name, last_call) VALUES (?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            name = COALESCE(excluded.name, "user".name),
            last_call = excluded.last_call
        """,
        (user_id, name, last_call),
    )
    conn.commit()


def channel_activity(conn: sqlite3.Connection, channel_id: str) -> dict[str, Any]:
    row = conn.execute("SELECT activity FROM channel WHERE id = ?", (channel_id,)).fetchone()
    if row is None:
        return {}
    return db.from_json(row["activity"])

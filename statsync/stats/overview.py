from __future__ import annotations

import datetime as dt
import sqlite3
from typing import Any

from .. import db
from .roster import TIME_FORMAT

ACTIVE_WINDOW_S = 24 * 3600


def overview(
    conn: sqlite3.Connection,
    *,
    now: dt.datetime | None = None,
    active_window_s: int = ACTIVE_WINDOW_S,
) -> dict[str, Any]:
    """Aggregate counts shown alongside the bucketed stats."""

    cutoff = (now or dt.datetime.now()) - dt.timedelta(seconds=active_window_s)
    (
        [active_users],
        [all_users],
        [active_channels],
        [all_channels],
        [storage],
    ) = db.query_many(
        conn,
        [
            'SELECT COUNT(*) AS count FROM "user" WHERE last_call >= ?',
            'SELECT COUNT(*) AS count FROM "user"',
            "SELECT COUNT(*) AS count FROM channel WHERE COALESCE(assignee, '') != ''",
            "SELECT COUNT(*) AS count FROM channel",
            "SELECT page_count * page_size AS size "
            "FROM pragma_page_count(), pragma_page_size()",
        ],
        [cutoff.strftime(TIME_FORMAT)],
    )
    return {
        "active_users": int(active_users["count"] or 0),
        "all_users": int(all_users["count"] or 0),
        "active_channels": int(active_channels["count"] or 0),
        "all_channels": int(all_channels["count"] or 0),
        "storage_size": int(storage["size"] or 0),
    }

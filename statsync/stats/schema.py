from __future__ import annotations

import sqlite3
from collections.abc import Sequence

from .. import db
from .merge import KeyedMerge, ScalarMerge
from .types import (
    DAILY_FIELDS,
    DAILY_TABLE,
    HOURLY_FIELDS,
    HOURLY_TABLE,
    LONGTERM_FIELDS,
    LONGTERM_TABLE,
)


def initialize_stats_schema(
    conn: sqlite3.Connection,
    *,
    daily_fields: Sequence[str] = DAILY_FIELDS,
    hourly_fields: Sequence[str] = HOURLY_FIELDS,
    longterm_fields: Sequence[str] = LONGTERM_FIELDS,
) -> None:
    """Create the roster tables and the three bucketed stats tables.

    Run once before a synchronizer is built over ``conn``.
    """

    db.initialize_schema(conn)
    db.register_stat_table(conn, DAILY_TABLE, daily_fields, KeyedMerge.column_type)
    db.register_stat_table(conn, HOURLY_TABLE, hourly_fields, ScalarMerge.column_type)
    db.register_stat_table(conn, LONGTERM_TABLE, longterm_fields, ScalarMerge.column_type)

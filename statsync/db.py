from __future__ import annotations

import json
import re
import sqlite3
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .stats.types import Statement

DEFAULT_DB_PATH = Path.home() / ".statsync.sqlite"

BUCKET_COLUMN = "time"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_ident(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"invalid identifier: {name!r}")
    return f'"{name}"'


def connect(db_path: Path | str, check_same_thread: bool = True) -> sqlite3.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS "user" (
            id TEXT PRIMARY KEY,
            name TEXT,
            last_call TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_user_last_call ON "user"(last_call DESC);

        CREATE TABLE IF NOT EXISTS channel (
            id TEXT PRIMARY KEY,
            name TEXT,
            assignee TEXT,
            activity TEXT NOT NULL DEFAULT '{}'
        );
        """
    )
    _ensure_column(conn, "channel", "activity", "TEXT NOT NULL DEFAULT '{}'")
    conn.commit()


def register_stat_table(
    conn: sqlite3.Connection, table: str, fields: Sequence[str], column_type: str
) -> None:
    """Declare a bucketed stats table keyed by bucket label, one column per field."""

    definitions = [f"{quote_ident(BUCKET_COLUMN)} TEXT PRIMARY KEY"]
    definitions.extend(f"{quote_ident(field)} {column_type}" for field in fields)
    conn.execute(f"CREATE TABLE IF NOT EXISTS {quote_ident(table)} ({', '.join(definitions)})")
    # Field sets may grow between releases; older tables get the new columns.
    for field in fields:
        _ensure_column(conn, table, field, column_type)
    conn.commit()


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, column_type: str) -> None:
    existing = {
        row[1] for row in conn.execute(f"PRAGMA table_info({quote_ident(table)})").fetchall()
    }
    if column in existing:
        return
    conn.execute(f"ALTER TABLE {quote_ident(table)} ADD COLUMN {quote_ident(column)} {column_type}")


def execute_batch(conn: sqlite3.Connection, batch: Sequence[Statement]) -> None:
    """Apply every statement in one transaction; any failure rolls back the whole batch."""

    if not batch:
        return
    with conn:
        for statement in batch:
            conn.execute(statement.sql, statement.params)


def query_many(
    conn: sqlite3.Connection, statements: Sequence[str], params: Sequence[Any] = ()
) -> list[list[sqlite3.Row]]:
    """Run read statements in order, consuming ``params`` left to right by placeholder."""

    results: list[list[sqlite3.Row]] = []
    offset = 0
    for sql in statements:
        count = sql.count("?")
        bound = tuple(params[offset : offset + count])
        if len(bound) != count:
            raise ValueError(f"not enough parameters for statement: {sql}")
        offset += count
        results.append(conn.execute(sql, bound).fetchall())
    return results


def from_json(text: str | None) -> dict[str, Any]:
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {}


def rows_to_dicts(rows: Iterable[sqlite3.Row]) -> list[dict[str, Any]]:
    return [dict(r) for r in rows]

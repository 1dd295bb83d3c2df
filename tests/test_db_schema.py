from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from statsync import db
from statsync.stats.schema import initialize_stats_schema
from statsync.stats.types import Statement


def _columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [row[1] for row in conn.execute(f'PRAGMA table_info("{table}")').fetchall()]


def test_initialize_stats_schema_creates_tables(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "stats.sqlite")
    try:
        initialize_stats_schema(
            conn,
            daily_fields=("command",),
            hourly_fields=("total", "message"),
            longterm_fields=("message",),
        )
        assert _columns(conn, "stats_daily") == ["time", "command"]
        assert _columns(conn, "stats_hourly") == ["time", "total", "message"]
        assert _columns(conn, "stats_longterm") == ["time", "message"]
        assert _columns(conn, "channel") == ["id", "name", "assignee", "activity"]
        assert _columns(conn, "user") == ["id", "name", "last_call"]
    finally:
        conn.close()


def test_register_stat_table_adds_new_fields(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "stats.sqlite")
    try:
        db.register_stat_table(conn, "stats_hourly", ("total",), "INTEGER NOT NULL DEFAULT 0")
        conn.execute('INSERT INTO "stats_hourly"(time, total) VALUES (?, 3)', ("2026-10-18",))
        conn.commit()

        db.register_stat_table(
            conn, "stats_hourly", ("total", "message"), "INTEGER NOT NULL DEFAULT 0"
        )

        row = conn.execute('SELECT * FROM "stats_hourly"').fetchone()
    finally:
        conn.close()

    assert dict(row) == {"time": "2026-10-18", "total": 3, "message": 0}


def test_quote_ident_rejects_unsafe_names() -> None:
    assert db.quote_ident("group") == '"group"'
    for name in ("", "1abc", "a-b", 'x"; DROP TABLE y; --'):
        with pytest.raises(ValueError):
            db.quote_ident(name)


def test_execute_batch_is_all_or_nothing(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "stats.sqlite")
    try:
        conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        conn.commit()
        batch = [
            Statement("INSERT INTO t(id) VALUES (?)", (1,)),
            Statement("INSERT INTO t(id) VALUES (?)", (1,)),
        ]
        with pytest.raises(sqlite3.IntegrityError):
            db.execute_batch(conn, batch)
        count = conn.execute("SELECT COUNT(*) FROM t").fetchone()[0]
    finally:
        conn.close()

    assert count == 0


def test_query_many_consumes_params_in_order(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "stats.sqlite")
    try:
        conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        conn.executemany("INSERT INTO t(id) VALUES (?)", [(i,) for i in range(10)])
        conn.commit()

        first, second, third = db.query_many(
            conn,
            [
                "SELECT id FROM t ORDER BY id LIMIT ?",
                "SELECT id FROM t WHERE id > ? ORDER BY id LIMIT ?",
                "SELECT COUNT(*) AS n FROM t",
            ],
            [2, 7, 5],
        )
        with pytest.raises(ValueError, match="not enough parameters"):
            db.query_many(conn, ["SELECT id FROM t WHERE id = ?"], [])
    finally:
        conn.close()

    assert [row["id"] for row in first] == [0, 1]
    assert [row["id"] for row in second] == [8, 9]
    assert third[0]["n"] == 10


def test_json_helpers() -> None:
    assert db.from_json(None) == {}
    assert db.from_json("not json") == {}
    assert db.from_json('{"a": 1}') == {"a": 1}

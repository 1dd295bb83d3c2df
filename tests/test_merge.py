from __future__ import annotations

import json
import sqlite3

import pytest

from statsync.stats.merge import KeyedMerge, ScalarMerge, json_label, json_path


def _conn() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute(
        "CREATE TABLE t (id INTEGER PRIMARY KEY, n INTEGER NOT NULL DEFAULT 0, m TEXT)"
    )
    return conn


def test_scalar_zero_value_is_a_noop() -> None:
    merge = ScalarMerge()
    assert merge.zero() == 0
    assert merge.update("total", 0) is None


def test_scalar_update_adds_to_stored_value() -> None:
    merge = ScalarMerge()
    conn = _conn()
    conn.execute("INSERT INTO t(id, n) VALUES (1, 5)")

    update = merge.update("n", 7)
    assert update is not None
    assert update.params == (7,)
    conn.execute(f"UPDATE t SET {update.sql} WHERE id = 1", update.params)

    assert conn.execute("SELECT n FROM t WHERE id = 1").fetchone()["n"] == 12


def test_scalar_create_binds_literal() -> None:
    create = ScalarMerge().create(4)
    assert create.sql == "?"
    assert create.params == (4,)


def test_keyed_empty_mapping_is_a_noop() -> None:
    merge = KeyedMerge()
    assert merge.zero() == {}
    assert merge.update("command", {}) is None


def test_keyed_create_builds_json_object() -> None:
    conn = _conn()
    create = KeyedMerge().create({"ping": 2, "help": 1})

    conn.execute(f"INSERT INTO t(id, m) VALUES (1, {create.sql})", create.params)

    stored = json.loads(conn.execute("SELECT m FROM t").fetchone()["m"])
    assert stored == {"ping": 2, "help": 1}


def test_keyed_create_of_empty_mapping_is_empty_object() -> None:
    conn = _conn()
    create = KeyedMerge().create({})

    conn.execute(f"INSERT INTO t(id, m) VALUES (1, {create.sql})", create.params)

    assert json.loads(conn.execute("SELECT m FROM t").fetchone()["m"]) == {}


def test_keyed_update_increments_sub_keys_and_keeps_others() -> None:
    conn = _conn()
    conn.execute("INSERT INTO t(id, m) VALUES (1, ?)", (json.dumps({"cmd1": 1, "other": 9}),))

    update = KeyedMerge().update("m", {"cmd1": 2, "cmd2": 1})
    assert update is not None
    conn.execute(f"UPDATE t SET {update.sql} WHERE id = 1", update.params)

    stored = json.loads(conn.execute("SELECT m FROM t").fetchone()["m"])
    assert stored == {"cmd1": 3, "cmd2": 1, "other": 9}


def test_keyed_update_treats_null_column_as_empty() -> None:
    conn = _conn()
    conn.execute("INSERT INTO t(id, m) VALUES (1, NULL)")

    update = KeyedMerge().update("m", {20379: 4})
    assert update is not None
    conn.execute(f"UPDATE t SET {update.sql} WHERE id = 1", update.params)

    assert json.loads(conn.execute("SELECT m FROM t").fetchone()["m"]) == {"20379": 4}


def test_json_path_quotes_labels() -> None:
    assert json_path("a.b") == '$."a.b"'
    assert json_path('say "hi"') == '$."say hi"'
    assert json_path("a\\b") == '$."ab"'
    assert json_path(12) == '$."12"'


@pytest.mark.parametrize(
    "key",
    ["a\\b", 'say "hi"', "", "a.b", "日本", "a]b", "a'b", "$[0]", "\\\\", 42],
)
def test_keyed_create_and_update_address_the_same_member(key: object) -> None:
    conn = _conn()
    merge = KeyedMerge()
    create = merge.create({key: 1})
    conn.execute(f"INSERT INTO t(id, m) VALUES (1, {create.sql})", create.params)

    update = merge.update("m", {key: 2})
    assert update is not None
    conn.execute(f"UPDATE t SET {update.sql} WHERE id = 1", update.params)

    stored = json.loads(conn.execute("SELECT m FROM t").fetchone()["m"])
    assert stored == {json_label(key): 3}


def test_combine_merges_values() -> None:
    assert ScalarMerge().combine(3, 4) == 7
    assert KeyedMerge().combine({"a": 1}, {"a": 2, "b": 1}) == {"a": 3, "b": 1}

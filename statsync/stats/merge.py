from __future__ import annotations

from typing import Any, Protocol, TypeVar

from ..db import quote_ident
from .types import Fragment

V = TypeVar("V")


class MergeStrategy(Protocol[V]):
    """How an accumulated counter value is written to and merged into a stored column."""

    column_type: str

    def zero(self) -> V: ...

    def create(self, value: V) -> Fragment: ...

    def update(self, column: str, value: V) -> Fragment | None: ...

    def combine(self, current: V, value: V) -> V: ...


class ScalarMerge:
    column_type = "INTEGER NOT NULL DEFAULT 0"

    def zero(self) -> int:
        return 0

    def create(self, value: int) -> Fragment:
        return Fragment("?", (int(value),))

    def update(self, column: str, value: int) -> Fragment | None:
        if not value:
            return None
        quoted = quote_ident(column)
        return Fragment(f"{quoted} = COALESCE({quoted}, 0) + ?", (int(value),))

    def combine(self, current: int, value: int) -> int:
        return int(current or 0) + int(value or 0)


def json_label(key: Any) -> str:
    # Quotes and backslashes are escapes inside a quoted JSON path label, but
    # json_object() stores them literally; drop them so both address one member.
    return str(key).replace('"', "").replace("\\", "")


def json_path(key: Any) -> str:
    return f'$."{json_label(key)}"'


class KeyedMerge:
    column_type = "TEXT NOT NULL DEFAULT '{}'"

    def zero(self) -> dict[str, int]:
        return {}

    def create(self, value: dict[str, int]) -> Fragment:
        params: list[Any] = []
        for key, count in value.items():
            params.extend((json_label(key), int(count)))
        placeholders = ", ".join("?, ?" for _ in value)
        return Fragment(f"json_object({placeholders})", tuple(params))

    def update(self, column: str, value: dict[str, int]) -> Fragment | None:
        if not value:
            return None
        quoted = quote_ident(column)
        parts: list[str] = []
        params: list[Any] = []
        for key, count in value.items():
            path = json_path(key)
            parts.append(f"?, COALESCE(json_extract({quoted}, ?), 0) + ?")
            params.extend((path, path, int(count)))
        return Fragment(
            f"{quoted} = json_set(COALESCE({quoted}, '{{}}'), {', '.join(parts)})",
            tuple(params),
        )

    def combine(self, current: dict[str, int], value: dict[str, int]) -> dict[str, int]:
        merged = dict(current or {})
        for key, count in (value or {}).items():
            merged[key] = merged.get(key, 0) + int(count)
        return merged

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from ..db import BUCKET_COLUMN, quote_ident
from .merge import KeyedMerge, MergeStrategy, ScalarMerge
from .types import RETENTION_DAYS, FlushResult, Fragment, Statement

logger = logging.getLogger(__name__)

V = TypeVar("V")


class BucketedCounterStore(Generic[V]):
    """Counters for a fixed field set, flushed into one row per time bucket.

    ``data`` may be mutated directly while holding ``lock``; field names are
    only validated when the store is flushed.
    """

    def __init__(
        self,
        table: str,
        fields: Sequence[str],
        strategy: MergeStrategy[V],
        *,
        preserve: bool = False,
        retention_days: int = RETENTION_DAYS,
    ) -> None:
        quote_ident(table)
        for name in fields:
            quote_ident(name)
        self.table = table
        self.fields: tuple[str, ...] = tuple(fields)
        self.strategy = strategy
        self.preserve = preserve
        self.retention_days = retention_days
        self.key: str | None = None
        self.lock = threading.Lock()
        self.data: dict[str, Any] = {}
        self._clear()

    def _clear(self) -> None:
        self.data.clear()
        for name in self.fields:
            self.data[name] = self.strategy.zero()

    def flush(self, label: str, batch: list[Statement]) -> FlushResult | None:
        with self.lock:
            updates: list[Fragment] = []
            for name in list(self.data):
                if name not in self.fields:
                    logger.warning("unknown key %r in stats table %r", name, self.table)
                    del self.data[name]
                    continue
                update = self.strategy.update(name, self.data[name])
                if update is not None:
                    updates.append(update)
            if not updates:
                return None

            logger.debug("flushing %s at %s: %s", self.table, label, self.data)
            table = quote_ident(self.table)
            bucket = quote_ident(BUCKET_COLUMN)
            assignments = ", ".join(update.sql for update in updates)
            update_params = tuple(p for update in updates for p in update.params)
            previous_key = self.key
            if label == self.key:
                batch.append(
                    Statement(
                        f"UPDATE {table} SET {assignments} WHERE {bucket} = ?",
                        (*update_params, label),
                    )
                )
            else:
                self.key = label
                creates = [
                    self.strategy.create(self.data.get(name, self.strategy.zero()))
                    for name in self.fields
                ]
                columns = ", ".join(quote_ident(name) for name in self.fields)
                values = ", ".join(create.sql for create in creates)
                create_params = tuple(p for create in creates for p in create.params)
                batch.append(
                    Statement(
                        f"INSERT INTO {table} ({bucket}, {columns}) VALUES (?, {values}) "
                        f"ON CONFLICT({bucket}) DO UPDATE SET {assignments}",
                        (label, *create_params, *update_params),
                    )
                )
            if not self.preserve:
                batch.append(self.prune_statement(label))

            result = FlushResult(label=label, previous_key=previous_key, values=dict(self.data))
            self._clear()
            return result

    def prune_statement(self, label: str) -> Statement:
        bucket = quote_ident(BUCKET_COLUMN)
        return Statement(
            f"DELETE FROM {quote_ident(self.table)} "
            f"WHERE julianday(date(?)) - julianday(date({bucket})) > ?",
            (label, self.retention_days),
        )

    def restore(self, result: FlushResult) -> None:
        """Merge a flushed snapshot back after its batch failed to commit."""

        with self.lock:
            for name, value in result.values.items():
                current = self.data.get(name, self.strategy.zero())
                self.data[name] = self.strategy.combine(current, value)
            self._rollback_key(result)

    def discard(self, result: FlushResult) -> None:
        """Forget a failed flush without requeueing its values."""

        with self.lock:
            self._rollback_key(result)

    def _rollback_key(self, result: FlushResult) -> None:
        # The row for a failed insert was never written.
        if self.key == result.label:
            self.key = result.previous_key

    def peek(self) -> dict[str, Any]:
        with self.lock:
            return {name: _copy(value) for name, value in self.data.items()}


def _copy(value: Any) -> Any:
    if isinstance(value, dict):
        return dict(value)
    return value


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"counter amount must be non-negative, got {amount}")


class ScalarCounterStore(BucketedCounterStore[int]):
    def __init__(
        self,
        table: str,
        fields: Sequence[str],
        *,
        preserve: bool = False,
        retention_days: int = RETENTION_DAYS,
    ) -> None:
        super().__init__(
            table, fields, ScalarMerge(), preserve=preserve, retention_days=retention_days
        )

    def increment(self, field: str, amount: int = 1) -> None:
        _check_amount(amount)
        with self.lock:
            self.data[field] = self.data.get(field, 0) + amount


class KeyedCounterStore(BucketedCounterStore[dict[str, int]]):
    def __init__(
        self,
        table: str,
        fields: Sequence[str],
        *,
        preserve: bool = False,
        retention_days: int = RETENTION_DAYS,
    ) -> None:
        super().__init__(
            table, fields, KeyedMerge(), preserve=preserve, retention_days=retention_days
        )

    def increment(self, field: str, key: str | int, amount: int = 1) -> None:
        _check_amount(amount)
        with self.lock:
            stat = self.data.setdefault(field, {})
            stat[str(key)] = stat.get(str(key), 0) + amount

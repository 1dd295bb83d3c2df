from __future__ import annotations

import datetime as dt
import logging
import sqlite3
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .. import db
from .bucket import BucketedCounterStore, KeyedCounterStore, ScalarCounterStore
from .merge import KeyedMerge
from .schema import initialize_stats_schema
from .types import (
    DAILY_FIELDS,
    DAILY_TABLE,
    HOURLY_FIELDS,
    HOURLY_TABLE,
    LONGTERM_FIELDS,
    LONGTERM_TABLE,
    RECENT_LENGTH,
    RETENTION_DAYS,
    FlushResult,
    Statement,
    StatsSnapshot,
)

if TYPE_CHECKING:
    from ..config import StatsyncConfig

logger = logging.getLogger(__name__)

_EPOCH_ORDINAL = dt.date(1970, 1, 1).toordinal()


def day_label(now: dt.datetime) -> str:
    return now.strftime("%Y-%m-%d 00:00:00")


def hour_label(now: dt.datetime) -> str:
    return now.strftime("%Y-%m-%d %H:00:00")


def date_number(now: dt.datetime) -> int:
    """Days since 1970-01-01 for the local calendar date of ``now``."""

    return now.date().toordinal() - _EPOCH_ORDINAL


class StatsSynchronizer:
    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        daily_fields: Sequence[str] = DAILY_FIELDS,
        hourly_fields: Sequence[str] = HOURLY_FIELDS,
        longterm_fields: Sequence[str] = LONGTERM_FIELDS,
        recent_length: int = RECENT_LENGTH,
        retention_days: int = RETENTION_DAYS,
        requeue_on_failure: bool = True,
    ) -> None:
        self.conn = conn
        self.recent_length = recent_length
        self.requeue_on_failure = requeue_on_failure
        self.hourly = ScalarCounterStore(
            HOURLY_TABLE, hourly_fields, retention_days=retention_days
        )
        self.daily = KeyedCounterStore(DAILY_TABLE, daily_fields, retention_days=retention_days)
        self.longterm = ScalarCounterStore(LONGTERM_TABLE, longterm_fields, preserve=True)
        self.channels: dict[str, int] = {}
        self._channels_lock = threading.Lock()
        self._upload_lock = threading.Lock()
        self._conn_lock = threading.Lock()
        self._activity = KeyedMerge()

    @classmethod
    def open(
        cls,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        daily_fields: Sequence[str] = DAILY_FIELDS,
        hourly_fields: Sequence[str] = HOURLY_FIELDS,
        longterm_fields: Sequence[str] = LONGTERM_FIELDS,
        **kwargs: Any,
    ) -> StatsSynchronizer:
        conn = db.connect(db_path, check_same_thread=False)
        initialize_stats_schema(
            conn,
            daily_fields=daily_fields,
            hourly_fields=hourly_fields,
            longterm_fields=longterm_fields,
        )
        return cls(
            conn,
            daily_fields=daily_fields,
            hourly_fields=hourly_fields,
            longterm_fields=longterm_fields,
            **kwargs,
        )

    @classmethod
    def from_config(cls, cfg: StatsyncConfig) -> StatsSynchronizer:
        return cls.open(
            cfg.db_path,
            daily_fields=cfg.daily_fields,
            hourly_fields=cfg.hourly_fields,
            longterm_fields=cfg.longterm_fields,
            recent_length=cfg.recent_length,
            retention_days=cfg.retention_days,
            requeue_on_failure=cfg.requeue_on_failure,
        )

    def close(self) -> None:
        self.conn.close()

    def add_daily(self, field: str, key: str | int) -> None:
        self.daily.increment(field, key)

    def add_hourly(self, field: str, amount: int = 1) -> None:
        self.hourly.increment(field, amount)

    def add_longterm(self, field: str, amount: int = 1) -> None:
        self.longterm.increment(field, amount)

    def record_channel_activity(self, channel_id: str) -> None:
        with self._channels_lock:
            self.channels[channel_id] = self.channels.get(channel_id, 0) + 1

    def upload(self, now: dt.datetime | None = None) -> None:
        now = now or dt.datetime.now()
        day = day_label(now)
        hour = hour_label(now)
        with self._upload_lock:
            batch: list[Statement] = []
            flushed: list[tuple[BucketedCounterStore[Any], FlushResult]] = []
            for store, label in ((self.hourly, hour), (self.daily, day), (self.longterm, day)):
                result = store.flush(label, batch)
                if result is not None:
                    flushed.append((store, result))

            with self._channels_lock:
                pending = dict(self.channels)
                self.channels.clear()
            day_number = date_number(now)
            for channel_id, count in pending.items():
                update = self._activity.update("activity", {day_number: count})
                if update is None:
                    continue
                batch.append(
                    Statement(
                        f"UPDATE channel SET {update.sql} WHERE id = ?",
                        (*update.params, channel_id),
                    )
                )

            if not batch:
                return
            try:
                with self._conn_lock:
                    db.execute_batch(self.conn, batch)
            except Exception:
                if self.requeue_on_failure:
                    self._requeue(flushed, pending)
                else:
                    for store, result in flushed:
                        store.discard(result)
                    logger.warning(
                        "stats upload failed; dropped %d table(s) and %d channel(s)",
                        len(flushed),
                        len(pending),
                    )
                raise
            logger.debug("stats updated (%d statements)", len(batch))

    def _requeue(
        self,
        flushed: list[tuple[BucketedCounterStore[Any], FlushResult]],
        pending: dict[str, int],
    ) -> None:
        for store, result in flushed:
            store.restore(result)
        with self._channels_lock:
            for channel_id, count in pending.items():
                self.channels[channel_id] = self.channels.get(channel_id, 0) + count
        logger.warning(
            "stats upload failed; requeued %d table(s) and %d channel(s)",
            len(flushed),
            len(pending),
        )

    def download(self, now: dt.datetime | None = None) -> StatsSnapshot:
        before = (now or dt.datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        with self._conn_lock:
            daily, hourly, longterm, channels = db.query_many(
                self.conn,
                [
                    f'SELECT * FROM "{DAILY_TABLE}" WHERE time <= ? ORDER BY time DESC LIMIT ?',
                    f'SELECT * FROM "{HOURLY_TABLE}" WHERE time <= ? ORDER BY time DESC LIMIT ?',
                    f'SELECT * FROM "{LONGTERM_TABLE}" WHERE time <= ? ORDER BY time DESC',
                    "SELECT id, name, assignee FROM channel ORDER BY id",
                ],
                [before, self.recent_length, before, 24 * self.recent_length, before],
            )
        daily_rows = db.rows_to_dicts(daily)
        for row in daily_rows:
            for name in self.daily.fields:
                if name in row:
                    row[name] = db.from_json(row[name])
        return StatsSnapshot(
            daily=daily_rows,
            hourly=db.rows_to_dicts(hourly),
            longterm=db.rows_to_dicts(longterm),
            channels=db.rows_to_dicts(channels),
        )

    def prune(self, now: dt.datetime | None = None) -> int:
        """Apply the retention policy to the pruned tables without flushing counters."""

        label = day_label(now or dt.datetime.now())
        batch = [store.prune_statement(label) for store in (self.hourly, self.daily)]
        with self._conn_lock:
            before = self.conn.total_changes
            db.execute_batch(self.conn, batch)
            return self.conn.total_changes - before

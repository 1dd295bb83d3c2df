from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

RECENT_LENGTH = 5
RETENTION_DAYS = 10

DAILY_TABLE = "stats_daily"
HOURLY_TABLE = "stats_hourly"
LONGTERM_TABLE = "stats_longterm"

DAILY_FIELDS: tuple[str, ...] = ("command", "dialogue", "bot_send", "bot_receive", "group")
HOURLY_FIELDS: tuple[str, ...] = ("total", "group", "private", "command", "dialogue", "message")
LONGTERM_FIELDS: tuple[str, ...] = ("message",)


@dataclass(frozen=True)
class Fragment:
    """A piece of SQL with its positional parameters."""

    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Statement:
    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class FlushResult:
    label: str
    previous_key: str | None
    values: dict[str, Any]


@dataclass
class StatsSnapshot:
    daily: list[dict[str, Any]] = field(default_factory=list)
    hourly: list[dict[str, Any]] = field(default_factory=list)
    longterm: list[dict[str, Any]] = field(default_factory=list)
    channels: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

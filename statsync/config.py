from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .db import DEFAULT_DB_PATH
from .stats.types import (
    DAILY_FIELDS,
    HOURLY_FIELDS,
    LONGTERM_FIELDS,
    RECENT_LENGTH,
    RETENTION_DAYS,
)

DEFAULT_CONFIG_PATH = Path("~/.config/statsync/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "db_path": "STATSYNC_DB",
    "upload_interval_s": "STATSYNC_UPLOAD_INTERVAL_S",
    "recent_length": "STATSYNC_RECENT_LENGTH",
    "retention_days": "STATSYNC_RETENTION_DAYS",
    "requeue_on_failure": "STATSYNC_REQUEUE_ON_FAILURE",
    "active_window_s": "STATSYNC_ACTIVE_WINDOW_S",
}

_INT_KEYS = {"upload_interval_s", "recent_length", "retention_days", "active_window_s"}
_BOOL_KEYS = {"requeue_on_failure"}
_FIELD_KEYS = {"daily_fields", "hourly_fields", "longterm_fields"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("STATSYNC_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class StatsyncConfig:
    db_path: str = str(DEFAULT_DB_PATH)
    upload_interval_s: int = 60
    recent_length: int = RECENT_LENGTH
    retention_days: int = RETENTION_DAYS
    requeue_on_failure: bool = True
    active_window_s: int = 24 * 3600

    # Field sets fix the columns of each stats table; removing a field
    # leaves its column in place but stops writing to it.
    daily_fields: list[str] = field(default_factory=lambda: list(DAILY_FIELDS))
    hourly_fields: list[str] = field(default_factory=lambda: list(HOURLY_FIELDS))
    longterm_fields: list[str] = field(default_factory=lambda: list(LONGTERM_FIELDS))


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def _coerce_str_list(value: object, *, key: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, list):
        items: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
        return items
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    warnings.warn(f"Invalid list for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return None


def load_config(path: Path | None = None) -> StatsyncConfig:
    cfg = StatsyncConfig()
    config_path = get_config_path(path)
    try:
        data = read_config_file(config_path)
    except ValueError as exc:
        warnings.warn(f"Invalid config file {config_path}: {exc}", RuntimeWarning, stacklevel=2)
        data = {}
    cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: StatsyncConfig, data: dict[str, Any]) -> StatsyncConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _BOOL_KEYS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if key in _FIELD_KEYS:
            parsed = _coerce_str_list(value, key=key)
            if parsed is not None:
                setattr(cfg, key, parsed)
            continue
        setattr(cfg, key, value)
    return cfg


def _apply_env(cfg: StatsyncConfig) -> StatsyncConfig:
    return _apply_dict(cfg, get_env_overrides())

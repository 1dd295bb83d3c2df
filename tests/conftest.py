from __future__ import annotations

from pathlib import Path

import pytest

from statsync.stats import StatsSynchronizer


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STATSYNC_CONFIG", str(tmp_path / "config.json"))
    for name in (
        "STATSYNC_DB",
        "STATSYNC_UPLOAD_INTERVAL_S",
        "STATSYNC_RECENT_LENGTH",
        "STATSYNC_RETENTION_DAYS",
        "STATSYNC_REQUEUE_ON_FAILURE",
        "STATSYNC_ACTIVE_WINDOW_S",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sync(tmp_path: Path):
    synchronizer = StatsSynchronizer.open(tmp_path / "stats.sqlite")
    try:
        yield synchronizer
    finally:
        synchronizer.close()

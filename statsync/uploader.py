from __future__ import annotations

import datetime as dt
import logging
import sys
import threading
from collections.abc import Callable

from .stats import StatsSynchronizer

logger = logging.getLogger(__name__)


class StatsUploader:
    """Calls ``upload`` on a fixed interval from a daemon thread.

    Ticks never overlap: the loop runs them one after another, and the
    synchronizer serializes uploads on its own lock as well.
    """

    def __init__(
        self,
        sync: StatsSynchronizer,
        interval_s: float = 60,
        *,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self.sync = sync
        self.interval_s = interval_s
        self.clock = clock
        self.last_error: str | None = None
        self.last_ok_at: dt.datetime | None = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def tick(self) -> bool:
        now = self.clock()
        try:
            self.sync.upload(now)
        except Exception as exc:
            self.last_error = str(exc)
            logger.exception("stats upload failed", exc_info=exc)
            if not logging.getLogger().hasHandlers():
                print(f"statsync: stats upload failed: {exc}", file=sys.stderr)
            return False
        self.last_error = None
        self.last_ok_at = now
        return True

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="statsync-uploader", daemon=True)
        self._thread.start()

    def stop(self, *, final_upload: bool = True, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        if final_upload:
            self.tick()

    def _run(self) -> None:
        interval = max(1.0, float(self.interval_s))
        while not self._stop.wait(interval):
            self.tick()

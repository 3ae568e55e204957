from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class RefreshLimiter:
    def __init__(self, *, min_interval_seconds: int) -> None:
        self._min_interval_seconds = max(int(min_interval_seconds), 0)
        self._lock = threading.Lock()
        self._last_attempt: datetime | None = None

    @property
    def min_interval_seconds(self) -> int:
        return self._min_interval_seconds

    def try_acquire(self, *, now: datetime) -> tuple[bool, int]:
        if self._min_interval_seconds <= 0:
            return True, 0

        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        with self._lock:
            if self._last_attempt is None:
                self._last_attempt = now
                return True, 0

            elapsed = (now - self._last_attempt).total_seconds()
            if elapsed >= self._min_interval_seconds:
                self._last_attempt = now
                return True, 0

            retry_after = int(self._min_interval_seconds - elapsed)
            return False, max(retry_after, 1)


class PeriodicRefresher:
    """Run ``task`` on a daemon thread every ``interval_seconds`` until stopped.

    The first run happens immediately. A failing run is logged and the loop
    carries on with the next cycle.
    """

    def __init__(
        self,
        *,
        task: Callable[[], object],
        interval_seconds: float,
        name: str = "periodic-refresh",
    ) -> None:
        self._task = task
        self._interval_seconds = float(interval_seconds)
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._runs = 0

    @property
    def runs(self) -> int:
        return self._runs

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Started %s every %.1fs", self._name, self._interval_seconds)

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._task()
            except Exception:
                logger.exception("%s cycle failed", self._name)
            self._runs += 1
            self._stop_event.wait(self._interval_seconds)

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PollingScheduler:
    """Run a job immediately and then every ``interval_seconds``.

    At most one run is ever in flight: a tick that arrives while the job is
    still running is skipped rather than queued.
    """

    def __init__(
        self,
        interval_seconds: float,
        job: Callable[[], object],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self._job = job
        self._clock = clock
        self._running = threading.Lock()
        self._stopped = threading.Event()
        self.runs = 0
        self.skipped = 0

    @property
    def busy(self) -> bool:
        return self._running.locked()

    def tick(self) -> bool:
        """Run the job once unless a run is already in progress."""
        if not self._running.acquire(blocking=False):
            self.skipped += 1
            logger.warning("Previous iteration still running; skipping this tick.")
            return False
        try:
            self.runs += 1
            self._job()
        except Exception:  # noqa: BLE001
            logger.exception("Iteration failed; will retry on the next tick.")
        finally:
            self._running.release()
        return True

    def start(self) -> None:
        """Block, ticking on a fixed-rate schedule until ``stop`` is called."""
        self._stopped.clear()
        logger.info("Starting to monitor the sheet every %s seconds...", self.interval_seconds)
        next_run = self._clock()
        while not self._stopped.is_set():
            self.tick()
            next_run += self.interval_seconds
            now = self._clock()
            if next_run <= now:
                missed = int((now - next_run) // self.interval_seconds) + 1
                logger.warning("Iteration overran the polling interval; skipping %d tick(s).", missed)
                self.skipped += missed
                next_run += missed * self.interval_seconds
            self._stopped.wait(next_run - now)

    def stop(self) -> None:
        self._stopped.set()

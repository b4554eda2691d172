# Periodic runner - fixed interval, one pass at a time
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60


class PeriodicScheduler:
    """
    Calls `job` once on start() and then every `interval` seconds on a daemon
    thread. Passes never overlap: a tick that fires while a pass is still
    running is skipped. A failing pass is logged and the timer keeps going.
    """

    def __init__(
        self,
        job: Callable[[], object],
        interval: float = DEFAULT_INTERVAL_SECONDS,
        name: str = "alert-scheduler",
    ) -> None:
        self._job = job
        self.interval = interval
        self._name = name
        self._pass_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.skipped_ticks = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> bool:
        """Start ticking. Returns False when already running."""
        with self._state_lock:
            if self.is_running:
                logger.info("Alert scheduler already running")
                return False
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._loop, args=(self._stop_event,), name=self._name, daemon=True
            )
            self._thread.start()
        logger.info("Alert scheduler started (interval=%ss)", self.interval)
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop future ticks. A pass already in progress is allowed to finish."""
        with self._state_lock:
            thread = self._thread
            self._stop_event.set()
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Alert scheduler stopped")

    def run_once(self):
        """Run one pass now, waiting for any in-progress pass to finish first."""
        with self._pass_lock:
            return self._job()

    def tick(self) -> bool:
        """Run a pass unless one is already in progress. Returns True if it ran."""
        if not self._pass_lock.acquire(blocking=False):
            self.skipped_ticks += 1
            logger.warning("Previous alert pass still running; skipping tick")
            return False
        try:
            self._job()
        except Exception:
            logger.exception("Scheduled alert pass failed")
        finally:
            self._pass_lock.release()
        return True

    def _loop(self, stop_event: threading.Event) -> None:
        self.tick()
        while not stop_event.wait(self.interval):
            self.tick()

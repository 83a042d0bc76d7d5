"""
Watchdog — recovers slots from builds that hang or go silent.

Runs in its own daemon thread, independent of request traffic:

    every WATCHDOG_INTERVAL seconds:
        queue.check_stuck_jobs()
            → release(identity, succeeded=False) for each stuck build
            → which drains the next queued request into the freed slot

This is the only thing that frees a slot when an executor crashes without
ever calling release(). It must keep running even when nothing is queued,
so a sweep error is logged and the loop carries on.
"""

import logging
import threading
from typing import Optional

from scheduler.engine import BuildQueue

logger = logging.getLogger(__name__)


class Watchdog:

    def __init__(self, queue: BuildQueue, interval: float = 60.0):
        self._queue = queue
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep loop in a daemon thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_loop, name="queue-watchdog", daemon=True)
        self._thread.start()
        logger.info(f"Watchdog started (every {self._interval:g}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the loop to stop and wait for the current sweep to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def tick(self) -> int:
        """Run one sweep. Returns how many builds were released."""
        try:
            released = self._queue.check_stuck_jobs()
        except Exception as e:
            logger.error(f"Watchdog sweep error: {e}", exc_info=True)
            return 0
        if released:
            logger.warning(f"Watchdog released {len(released)} stuck build(s)")
        return len(released)

    def _run_loop(self) -> None:
        # Event.wait doubles as an interruptible sleep
        while not self._stop.wait(self._interval):
            self.tick()

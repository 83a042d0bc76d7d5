"""
Build executor — runs a single build inside a worker thread.

This is the code on the other side of the queue's on_start contract. Each
worker thread calls executor.execute(...), which handles the full lifecycle:

    1. Find the handler registered for the build's JobKind
    2. Call handler.run(payload, heartbeat)
       → every heartbeat() refreshes the slot's last activity time
    3. On success: release(identity, succeeded=True)
    4. On failure: release(identity, succeeded=False)

release() is called exactly once per execute(), whatever happens. If the
watchdog already gave up on this build, that release is a harmless no-op.
"""

import logging
import time

from jobs.registry import get_job_handler
from models.enums import JobKind
from models.job import Identity
from scheduler.engine import BuildQueue

logger = logging.getLogger(__name__)


class JobExecutor:

    def __init__(self, queue: BuildQueue):
        self._queue = queue

    def execute(self, identity: Identity, payload: dict, kind: JobKind, display_name: str) -> dict:
        """
        Execute a single build. Called by BuildWorkerPool from a thread.

        Returns:
            dict with execution status (for logging/debugging, not stored)
        """
        start_time = time.monotonic()
        try:
            handler = get_job_handler(kind)
            result = handler.run(payload, lambda: self._queue.heartbeat(identity))
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.error(f"Build for {identity} [{JobKind(kind).value}] failed after {elapsed:.1f}s: {e}")
            self._queue.release(identity, succeeded=False)
            return {"status": "failed", "identity": identity, "error": str(e)}

        elapsed = time.monotonic() - start_time
        logger.info(f"Build for {identity} ({display_name}) completed in {elapsed:.1f}s")
        self._queue.release(identity, succeeded=True)
        return {"status": "completed", "identity": identity, "result": result}

"""
Worker pool — runs builds handed over by the build queue.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                   BuildWorkerPool                       │
    │                                                         │
    │  BuildQueue.on_start ──► start_build()                  │
    │  (queued builds)            ▲                           │
    │                             │  API POST /builds/        │
    │                             │  (immediate builds)       │
    │                             ▼                           │
    │   one daemon thread per build                           │
    │  ┌────────────┐ ┌────────────┐ ┌────────────┐           │
    │  │build-worker│ │build-worker│ │build-worker│  ...      │
    │  │  execute   │ │  execute   │ │ (hung, no  │           │
    │  │            │ │            │ │  slot)     │           │
    │  └────────────┘ └────────────┘ └────────────┘           │
    └─────────────────────────────────────────────────────────┘

Threads are not tied to slots. A handler that hangs keeps its thread after
the watchdog takes its slot away, and the build promoted into that slot gets
a thread of its own instead of waiting behind the hung one. The queue still
caps how many builds hold a slot; only abandoned threads exceed that count.

start_build() returns a Future as soon as the thread is started, so the
queue's callback thread is free again immediately.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Optional

from models.enums import JobKind
from models.job import Identity
from scheduler.engine import BuildQueue
from worker.executor import JobExecutor

logger = logging.getLogger(__name__)


class BuildWorkerPool:

    def __init__(self, queue: BuildQueue):
        self._queue = queue
        self._job_executor = JobExecutor(queue)
        self._threads: set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def running_threads(self) -> int:
        """Worker threads still alive, including ones whose slot was taken away."""
        with self._lock:
            return len(self._threads)

    def attach(self) -> None:
        """Register this pool as the queue's start callback."""
        self._queue.on_start = self.start_build
        logger.info(f"Worker pool attached ({self._queue.max_concurrent} slot(s))")

    def start_build(self, identity: Identity, payload: dict, kind: JobKind, display_name: str) -> Future:
        """
        Run a build that already holds a slot on a fresh worker thread.

        Raises RuntimeError after stop(); the queue treats that like any
        other start failure and releases the slot.
        """
        future: Future = Future()
        thread = threading.Thread(
            target=self._run,
            args=(future, identity, payload, kind, display_name),
            name=f"build-worker-{identity}",
            daemon=True,
        )
        with self._lock:
            if self._stopped:
                raise RuntimeError("Worker pool is stopped")
            self._threads.add(thread)

        logger.debug(f"Dispatching build for {identity} to {thread.name}")
        future.add_done_callback(self._on_build_done)
        thread.start()
        return future

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Refuse new builds. With wait=True, join running builds (each for at
        most `timeout` seconds; hung ones are left behind as daemon threads).
        """
        if self._queue.on_start == self.start_build:
            self._queue.on_start = None
        with self._lock:
            self._stopped = True
            threads = list(self._threads)
        if wait:
            for thread in threads:
                thread.join(timeout)
        logger.info("Worker pool stopped")

    def _run(self, future: Future, identity: Identity, payload: dict, kind: JobKind, display_name: str) -> None:
        try:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = self._job_executor.execute(identity, payload, kind, display_name)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(result)
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())

    def _on_build_done(self, future: Future) -> None:
        """
        Callback fired when a worker thread finishes a build.

        JobExecutor.execute() already released the slot; this only logs
        exceptions that escaped it.
        """
        try:
            exc = future.exception()
            if exc:
                logger.error(f"Unhandled worker exception: {exc}")
        except Exception as e:
            logger.error(f"Callback error: {e}")

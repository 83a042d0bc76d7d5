"""
Build queue — the core orchestrator.

The queue doesn't build anything. It decides WHO builds and WHEN:

    submit() ──> free slot? ──yes──> SlotRegistry (caller starts the build)
                     │
                     no
                     ▼
              AdmissionQueue (priority bucket | normal bucket)
                     ▲
                     │ process_next(): pop head → reserve → on_start(...)
                     │
    release() ───────┘  (executor finished, or the watchdog gave up on it)

One threading.Lock guards the queue, the slot registry and the statistics
together. The invariants span all three ("capacity check + membership check
+ counter update" must be atomic), so finer-grained locks would not help.

Callbacks never run under that lock. on_start and on_queue_update are
caller-supplied and may be slow or broken, so they are handed to a small
ThreadPoolExecutor once the lock is released. A failing on_start comes back
in through release(succeeded=False), which frees the slot and drains the
next entry as a NEW pool task, never as a nested call, so a long queue of
broken builds can't blow the stack.

Callbacks may be plain functions or coroutine functions. Coroutines run on
the event loop passed in as `loop` (FastAPI's, in production) or, without
one, on a private loop via asyncio.run().
"""

import asyncio
import inspect
import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional

from models.enums import JobKind, ServerState, StuckReason
from models.job import ActiveJob, AdmissionResult, Identity, JobRequest, project_name
from scheduler.admission import AdmissionQueue
from scheduler.slots import SlotRegistry
from scheduler.stats import StatsTracker
from store.base import AbstractStateStore, QueueSnapshot

logger = logging.getLogger(__name__)

StartCallback = Callable[[Identity, dict, JobKind, str], Any]
QueueUpdateCallback = Callable[[Identity, int, int, int], Any]

# (identity, position, queue_length, estimated_wait_minutes)
PositionUpdate = tuple[Identity, int, int, int]


class BuildQueue:

    MIN_CONCURRENT = 1
    MAX_CONCURRENT = 4

    def __init__(
        self,
        store: AbstractStateStore,
        max_concurrent: int = 1,
        admin_ids: Iterable[Any] = (),
        max_build_seconds: float = 45 * 60,
        inactivity_seconds: float = 10 * 60,
        default_build_minutes: int = 3,
        callback_workers: int = 4,
        clock: Callable[[], float] = time.time,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._store = store
        self._max_concurrent = max(self.MIN_CONCURRENT, min(max_concurrent, self.MAX_CONCURRENT))
        self._admin_ids = frozenset(str(i) for i in admin_ids)
        self._max_build_seconds = max_build_seconds
        self._inactivity_seconds = inactivity_seconds
        self._clock = clock
        self._loop = loop

        snapshot = store.load()
        self._queue = AdmissionQueue(snapshot.queue)
        self._slots = SlotRegistry(self._max_concurrent)
        self._stats = StatsTracker(snapshot.stats, default_minutes=default_build_minutes)
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._closed = False

        self._callbacks = ThreadPoolExecutor(
            max_workers=max(1, callback_workers),
            thread_name_prefix="queue-callback",
        )
        self._pending: set[Future] = set()
        self._idle = threading.Condition()

        self.on_start: Optional[StartCallback] = None
        self.on_queue_update: Optional[QueueUpdateCallback] = None

        stats = self._stats.stats
        logger.info(f"Build queue: max {self._max_concurrent} concurrent build(s)")
        logger.info(
            f"Stats: {stats.total} total, {stats.success} success, {stats.failed} failed"
        )
        logger.info(f"Admin IDs: {len(self._admin_ids)} configured")

    # ── Properties ──────────────────────────────────────────────

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def store(self) -> AbstractStateStore:
        return self._store

    def is_priority(self, identity: Identity) -> bool:
        return str(identity) in self._admin_ids

    # ── Admission ───────────────────────────────────────────────

    def submit(
        self,
        identity: Identity,
        payload: Optional[dict] = None,
        kind: JobKind | str = JobKind.URL,
        display_name: str = "User",
    ) -> AdmissionResult:
        """
        Admit a build request: start it now if a slot is free, else queue it.

        A pending request from the same identity is replaced, never
        duplicated. An identity that is already building is rejected; it
        would otherwise sit in the queue and the registry at the same time.

        When the result is immediate, the CALLER starts the build (the queue
        only invokes on_start for entries it promotes later).
        """
        kind = JobKind(kind)
        payload = payload or {}

        with self._lock:
            if self._slots.contains(identity):
                logger.info(f"Rejected submission from {identity}: build already running")
                return AdmissionResult(accepted=False, reason="already_active")

            replaced = self._queue.remove(identity) is not None
            if replaced:
                logger.info(f"Replacing pending build for {identity}")

            self._stats.record_admission()
            is_priority = self.is_priority(identity)
            now = self._clock()

            if self._reserve_locked(identity, payload, kind, display_name, now):
                self._persist_locked()
                updates = self._position_updates_locked() if replaced else []
                logger.info(
                    f"Started: {identity} by {display_name} "
                    f"({self._slots.size()}/{self._max_concurrent})"
                )
                result = AdmissionResult(accepted=True, immediate=True, is_priority=is_priority)
            else:
                request = JobRequest(
                    identity=identity,
                    display_name=display_name,
                    kind=kind,
                    payload=payload,
                    priority=is_priority,
                    enqueued_at=now,
                    request_id=self._next_request_id(now),
                )
                position = self._queue.add(request)
                self._persist_locked()
                updates = self._position_updates_locked()
                label = "Priority build" if is_priority else "Build"
                logger.info(f"{label} queued: {identity} at position {position}")
                result = AdmissionResult(
                    accepted=True,
                    immediate=False,
                    position=position,
                    estimated_wait_minutes=self._estimate_locked(position),
                    is_priority=is_priority,
                    request_id=request.request_id,
                )

        self._notify_positions(updates)
        return result

    def withdraw(self, identity: Identity) -> bool:
        """Remove a pending request. Returns False if nothing was queued."""
        with self._lock:
            if self._queue.remove(identity) is None:
                return False
            self._persist_locked()
            updates = self._position_updates_locked()

        logger.info(f"Removed from queue: {identity}")
        self._notify_positions(updates)
        return True

    # ── Slots ───────────────────────────────────────────────────

    def reserve(
        self,
        identity: Identity,
        payload: Optional[dict] = None,
        kind: JobKind | str = JobKind.URL,
        display_name: str = "User",
    ) -> bool:
        """
        Occupy a slot directly, bypassing the queue.

        Fails (False, nothing changes) when the identity is already building,
        is waiting in the queue, or every slot is taken.
        """
        with self._lock:
            acquired = self._reserve_locked(
                identity, payload or {}, JobKind(kind), display_name, self._clock()
            )
        if acquired:
            logger.info(f"Started: {identity} by {display_name}")
        return acquired

    def heartbeat(self, identity: Optional[Identity] = None) -> None:
        """Mark a build (or, with no identity, every build) as still alive."""
        with self._lock:
            self._slots.touch(identity, self._clock())

    def release(self, identity: Identity, succeeded: bool = True) -> bool:
        """
        Free the slot held by `identity`, record the outcome, drain the queue.

        Safe to call twice: a second call (or a late call after the watchdog
        already released the build) only logs a warning.
        """
        with self._lock:
            job = self._release_locked(identity, succeeded)

        if job is None:
            logger.warning(f"Release of unknown build: {identity}")
            return False

        outcome = "Completed" if succeeded else "Failed"
        logger.info(f"{outcome}: {identity} ({round(self._clock() - job.started_at)}s)")
        self.process_next()
        return True

    def force_release(self, identity: Optional[Identity] = None) -> int:
        """
        Administrative escape hatch: drop one active build, or all of them.

        Statistics are NOT touched: an operator clearing a stuck slot is not
        a build outcome. Returns how many slots were freed.
        """
        with self._lock:
            if identity is None:
                released = self._slots.release_all()
                logger.info("Force release ALL")
            else:
                job = self._slots.release(identity)
                released = [job] if job is not None else []
                if job is not None:
                    logger.info(f"Force release: {identity}")
            self._persist_locked()

        for _ in released:
            self.process_next()
        return len(released)

    # ── Draining ────────────────────────────────────────────────

    def process_next(self) -> bool:
        """
        Promote the queue head into a free slot and hand it to on_start.

        Promotes at most ONE entry. Returns True if something was started.
        If the reservation fails the entry goes back to the front and this
        call gives up; the next release() tries again.
        """
        with self._lock:
            if self._closed:
                return False
            if not len(self._queue):
                logger.debug("No pending builds")
                return False
            if self._slots.is_full():
                logger.debug(f"Still busy ({self._slots.size()}/{self._max_concurrent})")
                return False

            request = self._queue.pop()
            acquired = self._reserve_locked(
                request.identity,
                request.payload,
                request.kind,
                request.display_name,
                self._clock(),
            )
            if not acquired:
                logger.warning(f"Failed to acquire slot for {request.identity}, returning to queue")
                self._queue.push_front(request)
                self._persist_locked()
                return False

            self._persist_locked()
            updates = self._position_updates_locked()

        logger.info(f"Auto-starting: {request.identity} ({request.display_name})")
        self._notify_positions(updates)
        self._dispatch_start(request)
        return True

    def resume(self) -> int:
        """Fill free slots from a queue restored at startup. Returns builds started."""
        started = 0
        while self.process_next():
            started += 1
        if started:
            logger.info(f"Resumed {started} queued build(s)")
        return started

    # ── Watchdog sweep ──────────────────────────────────────────

    def check_stuck_jobs(self, now: Optional[float] = None) -> list[tuple[Identity, StuckReason]]:
        """
        Release every build that ran too long or went silent.

        Scan and release happen under one lock acquisition, so a build that
        finishes (and an identity that resubmits) while the sweep runs can
        never be mistaken for the stuck one. Released builds count as
        failures; the freed slots are drained after the lock is dropped.
        """
        with self._lock:
            now = self._clock() if now is None else now
            flagged: list[tuple[Identity, StuckReason]] = []
            for job in self._slots.jobs():
                total_time = now - job.started_at
                idle_time = now - job.last_activity_at
                if total_time > self._max_build_seconds:
                    flagged.append((job.identity, StuckReason.TIMEOUT))
                elif idle_time > self._inactivity_seconds:
                    flagged.append((job.identity, StuckReason.INACTIVE))

            for identity, _ in flagged:
                self._release_locked(identity, succeeded=False)

        for identity, reason in flagged:
            logger.warning(f"Build {reason.value.upper()}: {identity}, slot released")
        for _ in flagged:
            self.process_next()
        return flagged

    # ── Administration ──────────────────────────────────────────

    def reset_stats(self) -> None:
        with self._lock:
            self._stats.reset()
            self._persist_locked()
        logger.info("Statistics reset")

    def clear_queue(self) -> int:
        with self._lock:
            count = self._queue.clear()
            self._persist_locked()
        logger.info(f"Cleared {count} pending build(s)")
        return count

    # ── Read-only views ─────────────────────────────────────────

    def is_busy(self) -> bool:
        with self._lock:
            return self._slots.is_full()

    def has_pending(self, identity: Identity) -> bool:
        with self._lock:
            return self._queue.contains(identity)

    def has_active(self, identity: Identity) -> bool:
        with self._lock:
            return self._slots.contains(identity)

    def get_position(self, identity: Identity) -> int:
        with self._lock:
            return self._queue.position(identity)

    def get_estimated_wait(self, position: int) -> int:
        with self._lock:
            return self._estimate_locked(position)

    def average_success_duration_minutes(self) -> int:
        with self._lock:
            return self._stats.average_success_duration_minutes()

    def server_state(self) -> ServerState:
        with self._lock:
            return self._server_state_locked()

    def get_queue_info(self) -> dict:
        with self._lock:
            return self._queue_info_locked()

    def get_stats(self) -> dict:
        with self._lock:
            return self._stats_locked()

    def get_queue_list(self) -> list[dict]:
        with self._lock:
            return self._queue_list_locked()

    def get_active_jobs(self) -> list[dict]:
        with self._lock:
            return self._active_jobs_locked()

    def get_status_snapshot(self, identity: Optional[Identity] = None) -> dict:
        """
        Every read view at once, taken under a single lock acquisition so
        the parts agree with each other (status text is built from this).

        With an identity, also reports its queue position (0 if not queued)
        and the matching wait estimate.
        """
        with self._lock:
            position = self._queue.position(identity) if identity is not None else 0
            return {
                "info": self._queue_info_locked(),
                "stats": self._stats_locked(),
                "state": self._server_state_locked(),
                "active": self._active_jobs_locked(),
                "pending": self._queue_list_locked(),
                "position": position,
                "estimated_wait_minutes": self._estimate_locked(position) if position else 0,
            }

    # ── Lifecycle ───────────────────────────────────────────────

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until no callback task is outstanding. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout)

    def close(self, wait: bool = True) -> None:
        """Stop draining and shut the callback pool down."""
        with self._lock:
            self._closed = True
        self._callbacks.shutdown(wait=wait)
        logger.info("Build queue closed")

    # ── Internals (caller holds self._lock) ─────────────────────

    def _reserve_locked(
        self, identity: Identity, payload: dict, kind: JobKind, display_name: str, now: float
    ) -> bool:
        if self._queue.contains(identity):
            logger.info(f"Identity {identity} is queued, not reserving a slot")
            return False
        return self._slots.reserve(identity, payload, kind, display_name, now)

    def _release_locked(self, identity: Identity, succeeded: bool) -> Optional[ActiveJob]:
        job = self._slots.release(identity)
        if job is None:
            return None
        duration_ms = int((self._clock() - job.started_at) * 1000)
        self._stats.record_completion(succeeded, duration_ms)
        self._persist_locked()
        return job

    def _persist_locked(self) -> None:
        self._store.save(QueueSnapshot(queue=self._queue.items(), stats=self._stats.stats))

    def _estimate_locked(self, position: int) -> int:
        return self._stats.estimated_wait_minutes(
            position, self._slots.size(), self._max_concurrent
        )

    def _server_state_locked(self) -> ServerState:
        if self._slots.is_full():
            return ServerState.FULL
        if self._slots.size() > 0:
            return ServerState.ACTIVE
        return ServerState.READY

    def _queue_info_locked(self) -> dict:
        return {
            "total": len(self._queue) + self._slots.size(),
            "processing": self._slots.size(),
            "waiting": len(self._queue),
            "max_concurrent": self._max_concurrent,
        }

    def _stats_locked(self) -> dict:
        stats = self._stats.stats
        return {
            "success": stats.success,
            "failed": stats.failed,
            "total": stats.total,
            "avg_time": self._stats.average_success_seconds(),
        }

    def _queue_list_locked(self) -> list[dict]:
        return [
            {
                "position": index + 1,
                "identity": item.identity,
                "display_name": item.display_name or "Unknown",
                "project_name": project_name(item.payload),
                "kind": item.kind,
                "priority": item.priority,
                "enqueued_at": item.enqueued_at,
                "request_id": item.request_id,
                "estimated_wait_minutes": self._estimate_locked(index + 1),
            }
            for index, item in enumerate(self._queue)
        ]

    def _active_jobs_locked(self) -> list[dict]:
        now = self._clock()
        return [
            {
                "identity": job.identity,
                "display_name": job.display_name or "Unknown",
                "project_name": project_name(job.payload),
                "kind": job.kind,
                "started_at": job.started_at,
                "last_activity_at": job.last_activity_at,
                "duration_seconds": round(now - job.started_at),
            }
            for job in self._slots.jobs()
        ]

    def _position_updates_locked(self) -> list[PositionUpdate]:
        length = len(self._queue)
        return [
            (item.identity, index + 1, length, self._estimate_locked(index + 1))
            for index, item in enumerate(self._queue)
        ]

    def _next_request_id(self, now: float) -> str:
        return f"build_{int(now * 1000)}_{next(self._seq)}"

    # ── Internals (no lock held) ────────────────────────────────

    def _dispatch_start(self, request: JobRequest) -> None:
        try:
            future = self._callbacks.submit(self._run_start_callback, request)
        except RuntimeError as e:
            # Pool already shut down; free the slot rather than leak it
            logger.error(f"Cannot start {request.identity}: {e}")
            self.release(request.identity, succeeded=False)
            return
        self._track(future)

    def _run_start_callback(self, request: JobRequest) -> None:
        callback = self.on_start
        if callback is None:
            logger.error(f"on_start callback not set! Releasing slot for {request.identity}")
            self.release(request.identity, succeeded=False)
            return

        try:
            self._invoke(
                callback, request.identity, request.payload, request.kind, request.display_name
            )
        except Exception as e:
            logger.error(f"Auto-start error for {request.identity}: {e}", exc_info=True)
            self.release(request.identity, succeeded=False)

    def _notify_positions(self, updates: list[PositionUpdate]) -> None:
        if not updates or self.on_queue_update is None:
            return
        try:
            future = self._callbacks.submit(self._run_position_updates, updates)
        except RuntimeError as e:
            logger.warning(f"Skipping queue position updates: {e}")
            return
        self._track(future)

    def _run_position_updates(self, updates: list[PositionUpdate]) -> None:
        callback = self.on_queue_update
        if callback is None:
            return
        for identity, position, length, wait in updates:
            try:
                self._invoke(callback, identity, position, length, wait)
            except Exception as e:
                logger.warning(f"Failed to notify {identity}: {e}")

    def _invoke(self, callback: Callable, *args) -> Any:
        result = callback(*args)
        if inspect.iscoroutine(result):
            if self._loop is not None and self._loop.is_running():
                return asyncio.run_coroutine_threadsafe(result, self._loop).result()
            return asyncio.run(result)
        return result

    def _track(self, future: Future) -> None:
        with self._idle:
            self._pending.add(future)
        future.add_done_callback(self._untrack)

    def _untrack(self, future: Future) -> None:
        with self._idle:
            self._pending.discard(future)
            self._idle.notify_all()

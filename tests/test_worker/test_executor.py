"""
Tests for the JobExecutor and BuildWorkerPool.

The executor must release the slot exactly once per build, as succeeded or
failed, whatever the handler does.
"""

import threading
import time

import pytest

from jobs.base import AbstractJobHandler
from jobs.registry import get_job_handler, register_handler
from models.enums import JobKind
from worker.executor import JobExecutor
from worker.pool import BuildWorkerPool


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class ClockHeartbeatJob(AbstractJobHandler):
    """Moves the fake clock forward, heartbeats, and records what it saw."""

    def __init__(self, queue, clock):
        self._queue = queue
        self._clock = clock
        self.seen_activity = None

    def run(self, payload: dict, heartbeat) -> dict:
        self._clock.advance(120)
        heartbeat()
        self.seen_activity = self._queue.get_active_jobs()[0]["last_activity_at"]
        return {}

    @property
    def kind(self) -> JobKind:
        return JobKind.ZIP


class GatedJob(AbstractJobHandler):
    """Payloads with `hang` block until the gate opens; records who ran."""

    def __init__(self):
        self.gate = threading.Event()
        self.ran = []

    def run(self, payload: dict, heartbeat) -> dict:
        self.ran.append(payload["name"])
        if payload.get("hang"):
            self.gate.wait(10)
        return {}

    @property
    def kind(self) -> JobKind:
        return JobKind.ZIP


@pytest.fixture
def restore_zip_handler():
    original = get_job_handler(JobKind.ZIP)
    yield
    register_handler(JobKind.ZIP, original)


def test_successful_build_releases_as_success(make_queue):
    queue = make_queue(max_concurrent=1)
    queue.submit("u1", {"duration": 0.01})

    outcome = JobExecutor(queue).execute("u1", {"duration": 0.01}, JobKind.URL, "Alice")

    assert outcome["status"] == "completed"
    assert not queue.has_active("u1")
    assert queue.get_stats()["success"] == 1


def test_failed_build_releases_as_failure(make_queue):
    queue = make_queue(max_concurrent=1)
    payload = {"duration": 0.01, "fail_probability": 1.0}
    queue.submit("u1", payload)

    outcome = JobExecutor(queue).execute("u1", payload, JobKind.URL, "Alice")

    assert outcome["status"] == "failed"
    assert "Simulated build failure" in outcome["error"]
    assert queue.get_stats()["failed"] == 1


def test_heartbeat_reaches_queue(make_queue, clock, restore_zip_handler):
    queue = make_queue(max_concurrent=1)
    handler = ClockHeartbeatJob(queue, clock)
    register_handler(JobKind.ZIP, handler)
    queue.submit("u1", kind=JobKind.ZIP)

    JobExecutor(queue).execute("u1", {}, JobKind.ZIP, "Alice")

    assert handler.seen_activity == clock.now
    assert queue.get_stats()["success"] == 1


def test_release_after_watchdog_is_harmless(make_queue, clock):
    queue = make_queue(max_concurrent=1, inactivity_seconds=60)
    queue.submit("u1")
    clock.advance(61)
    queue.check_stuck_jobs()

    JobExecutor(queue).execute("u1", {"duration": 0.01}, JobKind.URL, "Alice")

    stats = queue.get_stats()
    assert stats["failed"] == 1
    assert stats["success"] == 0


def test_pool_runs_immediate_and_queued_builds(make_queue):
    queue = make_queue(max_concurrent=1)
    pool = BuildWorkerPool(queue)
    pool.attach()
    try:
        assert queue.submit("u1", {"duration": 0.05}).immediate
        pool.start_build("u1", {"duration": 0.05}, JobKind.URL, "Alice")
        assert queue.submit("u2", {"duration": 0.01}).position == 1

        assert _wait_for(lambda: queue.get_stats()["success"] == 2)
        assert queue.get_queue_info()["total"] == 0
    finally:
        pool.stop()


def test_stopped_pool_fails_queued_builds(make_queue):
    queue = make_queue(max_concurrent=1)
    pool = BuildWorkerPool(queue)
    pool.attach()
    pool.stop()

    queue.on_start = pool.start_build   # stale registration after shutdown
    queue.submit("u1")
    queue.submit("u2")
    queue.release("u1")
    queue.join(timeout=5)

    assert not queue.has_active("u2")
    assert queue.get_stats()["failed"] == 1


def test_hung_build_does_not_block_the_next_one(make_queue, clock, restore_zip_handler):
    queue = make_queue(max_concurrent=1, inactivity_seconds=60)
    handler = GatedJob()
    register_handler(JobKind.ZIP, handler)
    pool = BuildWorkerPool(queue)
    pool.attach()
    try:
        hung = {"name": "a", "hang": True}
        assert queue.submit("a", hung, JobKind.ZIP).immediate
        pool.start_build("a", hung, JobKind.ZIP, "Alice")
        queue.submit("b", {"name": "b"}, JobKind.ZIP)
        assert _wait_for(lambda: handler.ran == ["a"])

        clock.advance(61)
        assert len(queue.check_stuck_jobs()) == 1

        assert _wait_for(lambda: "b" in handler.ran)
        assert _wait_for(lambda: queue.get_stats()["success"] == 1)
        assert queue.get_stats()["failed"] == 1
        assert _wait_for(lambda: pool.running_threads == 1)   # only the abandoned build
    finally:
        handler.gate.set()
        pool.stop()

    assert pool.running_threads == 0

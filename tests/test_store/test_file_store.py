"""
Tests for the JSON file store.

A missing or corrupt file loads as empty state; a failed write returns False
instead of raising.
"""

import json

from models.enums import JobKind
from models.job import JobRequest, QueueStats
from store.base import QueueSnapshot
from store.file_store import JsonFileStore


def _make_snapshot() -> QueueSnapshot:
    return QueueSnapshot(
        queue=[
            JobRequest(
                identity=123456789,
                display_name="Alice",
                kind=JobKind.ZIP,
                payload={"app_name": "Shop", "icon": None},
                priority=True,
                enqueued_at=1_700_000_000.5,
                request_id="build_1700000000500_1",
            ),
            JobRequest(identity="web-1", display_name="Bob", kind=JobKind.URL),
        ],
        stats=QueueStats(success=4, failed=1, total=6, total_time=480_000),
    )


def test_round_trip(tmp_path):
    store = JsonFileStore(tmp_path / "queue.json")
    snapshot = _make_snapshot()

    assert store.save(snapshot) is True
    loaded = store.load()

    assert loaded.queue == snapshot.queue
    assert loaded.stats == snapshot.stats


def test_document_layout(tmp_path):
    path = tmp_path / "queue.json"
    JsonFileStore(path).save(_make_snapshot())

    document = json.loads(path.read_text())

    assert document["stats"] == {"success": 4, "failed": 1, "total": 6, "totalTime": 480_000}
    assert document["queue"][0]["identity"] == 123456789
    assert document["queue"][0]["kind"] == "zip"
    assert "lastSaved" in document


def test_creates_missing_directories(tmp_path):
    path = tmp_path / "nested" / "dir" / "queue.json"
    assert JsonFileStore(path).save(QueueSnapshot()) is True
    assert path.exists()


def test_missing_file_loads_empty(tmp_path):
    loaded = JsonFileStore(tmp_path / "nope.json").load()
    assert loaded.queue == []
    assert loaded.stats == QueueStats()


def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "queue.json"
    path.write_text("{not json")
    assert JsonFileStore(path).load().queue == []

    path.write_text(json.dumps({"queue": [{"display_name": "no identity"}]}))
    assert JsonFileStore(path).load().queue == []

    path.write_text(json.dumps(["not", "an", "object"]))
    assert JsonFileStore(path).load().stats == QueueStats()


def test_partial_document_uses_defaults(tmp_path):
    path = tmp_path / "queue.json"
    path.write_text(json.dumps({"queue": [{"identity": 7}]}))

    loaded = JsonFileStore(path).load()

    assert loaded.queue[0].identity == 7
    assert loaded.queue[0].kind == JobKind.URL
    assert loaded.queue[0].priority is False
    assert loaded.stats == QueueStats()


def test_failed_write_returns_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    store = JsonFileStore(blocker / "queue.json")

    assert store.save(_make_snapshot()) is False
    assert store.ping() is False


def test_ping_and_name(tmp_path):
    store = JsonFileStore(tmp_path / "queue.json")
    assert store.ping() is True
    assert store.backend_name == "file"

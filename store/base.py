"""
Abstract base class for queue state stores (Strategy pattern).

The BuildQueue only knows about AbstractStateStore: it calls load() once at
startup and save() after every mutation, without caring whether the document
lives in a JSON file or a Redis key.

To add a new backend:
1. Create a class that inherits AbstractStateStore
2. Implement load(), save() and ping()
3. Register it in store/registry.py

What gets stored is deliberately small: the pending queue and the statistics.
Active builds are NOT persisted. A restart loses in-flight work, but never
queued work or history.

Persisted document layout:
    {
        "queue": [JobRequest.to_dict(), ...],
        "stats": {"success": 0, "failed": 0, "total": 0, "totalTime": 0},
        "lastSaved": "2026-01-01T00:00:00+00:00"
    }

Error contract: stores never raise from load() or save(). A missing or
corrupt document loads as empty state, and a failed write is logged and
dropped; the in-memory queue stays authoritative for the running process.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

from models.job import JobRequest, QueueStats


@dataclass
class QueueSnapshot:
    queue: list[JobRequest] = field(default_factory=list)
    stats: QueueStats = field(default_factory=QueueStats)

    def to_document(self) -> dict:
        return {
            "queue": [item.to_dict() for item in self.queue],
            "stats": self.stats.to_dict(),
            "lastSaved": datetime.now(timezone.utc).isoformat(),
        }

    @classmethod
    def from_document(cls, data: dict) -> "QueueSnapshot":
        """
        Rebuild a snapshot from a stored document.

        Raises ValueError/KeyError/TypeError on a malformed document; stores
        catch these and fall back to an empty snapshot.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Queue document must be an object, got {type(data).__name__}")
        queue = [JobRequest.from_dict(item) for item in data.get("queue") or []]
        stats = QueueStats.from_dict(data.get("stats") or {})
        return cls(queue=queue, stats=stats)


class AbstractStateStore(ABC):

    @abstractmethod
    def load(self) -> QueueSnapshot:
        """Return the last saved snapshot, or an empty one if none is usable."""
        ...

    @abstractmethod
    def save(self, snapshot: QueueSnapshot) -> bool:
        """Persist the snapshot. Returns False (after logging) on failure."""
        ...

    @abstractmethod
    def ping(self) -> bool:
        """Cheap reachability check used by the health endpoint."""
        ...

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Unique name for this backend (e.g., 'file', 'redis')."""
        ...

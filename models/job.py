"""
Build queue data model.

Three records describe everything the scheduler knows:
- JobRequest: a build waiting in the admission queue (persisted)
- ActiveJob: a build occupying a slot (in memory only)
- QueueStats: running counters used for wait estimates (persisted)

These are plain dataclasses, NOT pydantic models: the scheduler core has no
web dependency, and the API layer converts them into response schemas.

Timestamps are epoch seconds (floats) so they survive JSON round trips
without timezone handling. The one exception is QueueStats.total_time, which
is kept in milliseconds to match the persisted document layout.
"""

from dataclasses import dataclass, field
from typing import Any, Hashable, Optional

from models.enums import JobKind

# Submitter identity: a chat id (int) or any other hashable, comparable key
Identity = Hashable


def project_name(payload: Optional[dict]) -> str:
    """Human label for a build, taken from the executor payload when present."""
    if not payload:
        return "Project"
    return payload.get("app_name") or payload.get("project_type") or "Project"


@dataclass
class JobRequest:
    identity: Identity
    display_name: str
    kind: JobKind
    payload: dict = field(default_factory=dict)
    priority: bool = False     # fixed at admission, never recomputed
    enqueued_at: float = 0.0
    request_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "identity": self.identity,
            "display_name": self.display_name,
            "kind": self.kind.value,
            "payload": self.payload,
            "priority": self.priority,
            "enqueued_at": self.enqueued_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JobRequest":
        return cls(
            identity=data["identity"],
            display_name=data.get("display_name") or "User",
            kind=JobKind(data.get("kind", JobKind.URL.value)),
            payload=data.get("payload") or {},
            priority=bool(data.get("priority", False)),
            enqueued_at=float(data.get("enqueued_at", 0.0)),
            request_id=data.get("request_id", ""),
        )


@dataclass
class ActiveJob:
    identity: Identity
    display_name: str
    kind: JobKind
    payload: dict
    started_at: float
    last_activity_at: float


@dataclass
class QueueStats:
    success: int = 0
    failed: int = 0
    total: int = 0
    total_time: int = 0   # milliseconds, successful builds only

    def to_dict(self) -> dict[str, int]:
        return {
            "success": self.success,
            "failed": self.failed,
            "total": self.total,
            "totalTime": self.total_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QueueStats":
        return cls(
            success=int(data.get("success", 0)),
            failed=int(data.get("failed", 0)),
            total=int(data.get("total", 0)),
            total_time=int(data.get("totalTime", 0)),
        )


@dataclass
class AdmissionResult:
    """Outcome of BuildQueue.submit()."""
    accepted: bool
    immediate: bool = False
    position: int = 0                  # 1-based queue position, 0 when running
    estimated_wait_minutes: int = 0
    is_priority: bool = False
    request_id: Optional[str] = None
    reason: Optional[str] = None       # set when accepted is False

"""
Pydantic schemas for the /queue endpoints (dashboard and admin views).
"""

from typing import Optional

from pydantic import BaseModel

from models.enums import JobKind


class QueueInfo(BaseModel):
    total: int
    processing: int
    waiting: int
    max_concurrent: int


class QueueStatsResponse(BaseModel):
    success: int
    failed: int
    total: int
    avg_time: int     # seconds per successful build


class QueueItem(BaseModel):
    position: int
    identity: str
    display_name: str
    project_name: str
    kind: JobKind
    priority: bool
    enqueued_at: float
    request_id: str
    estimated_wait_minutes: int


class ActiveBuild(BaseModel):
    identity: str
    display_name: str
    project_name: str
    kind: JobKind
    started_at: float
    last_activity_at: float
    duration_seconds: int


class ForceReleaseRequest(BaseModel):
    """Request body for POST /queue/force-release. No identity = release ALL."""

    identity: Optional[str] = None


class StatusMessage(BaseModel):
    message: str

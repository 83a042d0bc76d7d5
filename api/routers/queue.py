"""
Queue dashboard and admin endpoints.

GET    /queue/                   → Pending builds in queue order
GET    /queue/info               → Slot usage and queue length
GET    /queue/active             → Running builds
GET    /queue/stats              → Success/failure counters
GET    /queue/status/{identity}  → Status text for one submitter
GET    /queue/admin              → Status text for operators
POST   /queue/force-release      → Free one stuck slot, or all of them
POST   /queue/stats/reset        → Zero the counters
DELETE /queue/                   → Drop every pending build

Authentication of the admin endpoints is the deployment's job (reverse
proxy / front-end), not the queue's.

Like the /builds endpoints, handlers are plain `def` so lock waits and store
writes happen in FastAPI's threadpool.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_queue
from api.schemas.queue import (
    ActiveBuild,
    ForceReleaseRequest,
    QueueInfo,
    QueueItem,
    QueueStatsResponse,
    StatusMessage,
)
from scheduler.engine import BuildQueue
from scheduler.status import format_admin_queue, format_queue_status

router = APIRouter(prefix="/queue", tags=["queue"])


@router.get("/", response_model=list[QueueItem])
def list_queue(queue: BuildQueue = Depends(get_queue)) -> list[QueueItem]:
    return [
        QueueItem(**{**item, "identity": str(item["identity"])})
        for item in queue.get_queue_list()
    ]


@router.get("/info", response_model=QueueInfo)
def get_queue_info(queue: BuildQueue = Depends(get_queue)) -> QueueInfo:
    return QueueInfo(**queue.get_queue_info())


@router.get("/active", response_model=list[ActiveBuild])
def list_active(queue: BuildQueue = Depends(get_queue)) -> list[ActiveBuild]:
    return [
        ActiveBuild(**{**job, "identity": str(job["identity"])})
        for job in queue.get_active_jobs()
    ]


@router.get("/stats", response_model=QueueStatsResponse)
def get_stats(queue: BuildQueue = Depends(get_queue)) -> QueueStatsResponse:
    return QueueStatsResponse(**queue.get_stats())


@router.get("/status/{identity}", response_model=StatusMessage)
def get_status(identity: str, queue: BuildQueue = Depends(get_queue)) -> StatusMessage:
    return StatusMessage(message=format_queue_status(queue, identity))


@router.get("/admin", response_model=StatusMessage)
def get_admin_status(queue: BuildQueue = Depends(get_queue)) -> StatusMessage:
    return StatusMessage(message=format_admin_queue(queue))


@router.post("/force-release")
def force_release(
    body: ForceReleaseRequest,
    queue: BuildQueue = Depends(get_queue),
) -> dict:
    """
    Free stuck slots without waiting for the watchdog.

    Freed builds are NOT counted as failures, and any late release() from
    their executor is ignored.
    """
    return {"released": queue.force_release(body.identity)}


@router.post("/stats/reset", status_code=204)
def reset_stats(queue: BuildQueue = Depends(get_queue)) -> None:
    queue.reset_stats()


@router.delete("/")
def clear_queue(queue: BuildQueue = Depends(get_queue)) -> dict:
    return {"cleared": queue.clear_queue()}

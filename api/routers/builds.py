"""
Build submission endpoints — what a front-end or executor calls.

POST   /builds/                      → Submit a build (runs now or queues)
DELETE /builds/{identity}            → Withdraw a queued build
POST   /builds/heartbeat             → Mark EVERY running build as alive
POST   /builds/{identity}/heartbeat  → Mark one running build as alive
POST   /builds/{identity}/release    → Report a finished build

The router stays thin: validate, call the BuildQueue, shape the response.
Withdrawing or releasing something unknown is not an error for the queue, so
those endpoints answer 200 with a false flag instead of 404.

Handlers are plain `def`. Every BuildQueue call takes a threading lock and
writes the state store, so FastAPI runs them in its threadpool rather than
on the event loop.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_queue, get_workers
from api.schemas.build import AdmissionResponse, BuildCreate, ReleaseRequest
from scheduler.engine import BuildQueue
from worker.pool import BuildWorkerPool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/builds", tags=["builds"])


@router.post("/", response_model=AdmissionResponse, status_code=201)
def submit_build(
    build_in: BuildCreate,
    queue: BuildQueue = Depends(get_queue),
    workers: Optional[BuildWorkerPool] = Depends(get_workers),
) -> AdmissionResponse:
    """
    Submit a build.

    If a slot is free the build starts right away on the worker pool;
    otherwise it waits in the queue and the queue starts it later through
    its on_start callback. Resubmitting replaces a queued build.
    """
    result = queue.submit(
        build_in.identity,
        build_in.payload,
        build_in.kind,
        build_in.display_name,
    )
    if not result.accepted:
        raise HTTPException(
            status_code=409,
            detail=f"Build for {build_in.identity} is already running",
        )

    if result.immediate and workers is not None:
        try:
            workers.start_build(
                build_in.identity, build_in.payload, build_in.kind, build_in.display_name
            )
        except RuntimeError as e:
            logger.error(f"Could not start build for {build_in.identity}: {e}")
            queue.release(build_in.identity, succeeded=False)
            raise HTTPException(status_code=503, detail="Worker pool is not running")

    return AdmissionResponse.model_validate(result)


@router.delete("/{identity}")
def withdraw_build(
    identity: str,
    queue: BuildQueue = Depends(get_queue),
) -> dict:
    """Withdraw a queued build. Running builds cannot be cancelled here."""
    return {"removed": queue.withdraw(identity)}


@router.post("/heartbeat", status_code=204)
def heartbeat_all(queue: BuildQueue = Depends(get_queue)) -> None:
    queue.heartbeat()


@router.post("/{identity}/heartbeat", status_code=204)
def heartbeat_build(
    identity: str,
    queue: BuildQueue = Depends(get_queue),
) -> None:
    queue.heartbeat(identity)


@router.post("/{identity}/release")
def release_build(
    identity: str,
    release_in: ReleaseRequest,
    queue: BuildQueue = Depends(get_queue),
) -> dict:
    """Report a finished build and let the next queued build start."""
    return {"released": queue.release(identity, release_in.succeeded)}

"""
FastAPI dependency injection.

How this works:
- An endpoint declares `queue: BuildQueue = Depends(get_queue)`
- FastAPI calls get_queue() before the endpoint runs
- The queue object was built ONCE in the app lifespan and lives on app.state

There is no module-level queue singleton. Tests swap in their own isolated
BuildQueue with app.dependency_overrides.
"""

from typing import Optional

from fastapi import Request

from scheduler.engine import BuildQueue
from scheduler.watchdog import Watchdog
from worker.pool import BuildWorkerPool


async def get_queue(request: Request) -> BuildQueue:
    """Returns the BuildQueue stored on the app during startup."""
    return request.app.state.queue


async def get_workers(request: Request) -> Optional[BuildWorkerPool]:
    """
    Returns the worker pool, or None when builds are executed elsewhere and
    report back through the heartbeat/release endpoints.
    """
    return getattr(request.app.state, "workers", None)


async def get_watchdog(request: Request) -> Optional[Watchdog]:
    return getattr(request.app.state, "watchdog", None)

"""
Health check endpoint.

Reports whether the state store is reachable and the watchdog thread is
alive. A dead watchdog means hung builds will never free their slots, so it
is reported as unhealthy even though requests still work.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_queue, get_watchdog
from scheduler.engine import BuildQueue
from scheduler.watchdog import Watchdog

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(
    queue: BuildQueue = Depends(get_queue),
    watchdog: Optional[Watchdog] = Depends(get_watchdog),
):
    """Check the state store and the watchdog."""
    store_ok = queue.store.ping()
    watchdog_ok = watchdog is None or watchdog.running
    body = {
        "status": "healthy" if store_ok and watchdog_ok else "unhealthy",
        "store": f"{queue.store.backend_name}: {'ok' if store_ok else 'unreachable'}",
        "watchdog": "ok" if watchdog_ok else "stopped",
    }
    return JSONResponse(body, status_code=200 if body["status"] == "healthy" else 503)

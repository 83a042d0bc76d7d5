"""
FastAPI application factory.

This file:
1. Creates the FastAPI app
2. Runs startup logic (load queue state, start workers and the watchdog)
3. Registers all routers (builds, queue, health)
4. Runs shutdown logic (stop the watchdog, drain callbacks, stop workers)

The BuildQueue is built exactly once here and stored on app.state; every
endpoint receives it through api/dependencies.py.

To run:  uvicorn api.main:app --host 0.0.0.0 --port 8000
    or:  python -m api.main   (uses API_HOST / API_PORT)
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config.settings import settings
from api.routers import builds, health, queue as queue_router
from scheduler.engine import BuildQueue
from scheduler.watchdog import Watchdog
from store.registry import create_store
from worker.pool import BuildWorkerPool

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Runs on startup (before yield) and shutdown (after yield).

    Startup:
    - Loads queued builds and statistics from the state store
    - Attaches the worker pool as the queue's start callback
    - Starts the watchdog thread
    - Starts builds that were queued before the last restart

    Shutdown:
    - Stops the watchdog
    - Closes the queue (no more promotions) and the worker pool
    """
    # ── Startup ─────────────────────────────────────────────────
    store = create_store(settings)
    build_queue = BuildQueue(
        store,
        max_concurrent=settings.MAX_CONCURRENT_BUILDS,
        admin_ids=settings.admin_ids,
        max_build_seconds=settings.max_build_seconds,
        inactivity_seconds=settings.inactivity_seconds,
        default_build_minutes=settings.DEFAULT_BUILD_MINUTES,
        callback_workers=settings.CALLBACK_POOL_SIZE,
        loop=asyncio.get_running_loop(),
    )
    workers = BuildWorkerPool(build_queue)
    workers.attach()
    watchdog = Watchdog(build_queue, interval=settings.WATCHDOG_INTERVAL)
    watchdog.start()

    app.state.queue = build_queue
    app.state.workers = workers
    app.state.watchdog = watchdog

    build_queue.resume()
    logger.info(f"API ready — state backend: {store.backend_name}")

    yield  # app is running and serving requests between startup and shutdown

    # ── Shutdown ────────────────────────────────────────────────
    watchdog.stop()
    build_queue.close(wait=False)
    workers.stop(wait=False)
    logger.info("API shut down")


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    app = FastAPI(
        title="Build Queue",
        description="Bounded-concurrency build queue with admin priority and a stuck-build watchdog",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Register routers — each one adds its endpoints to the app
    app.include_router(health.router)
    app.include_router(builds.router)
    app.include_router(queue_router.router)

    return app


# This is what uvicorn imports: `uvicorn api.main:app`
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)

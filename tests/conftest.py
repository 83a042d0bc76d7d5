"""
Shared test fixtures.

These replace real infrastructure with lightweight in-memory alternatives:
- Wall clock → FakeClock (tests move time forward explicitly)
- State file → a JSON file under pytest's tmp_path
- Redis → fakeredis (pure Python Redis mock)
- HTTP server → httpx.AsyncClient with ASGI transport (no network)

Every test gets its own BuildQueue; nothing is shared between tests.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from api.dependencies import get_queue, get_workers
from api.main import create_app
from scheduler.engine import BuildQueue
from store.file_store import JsonFileStore


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "data" / "queue.json"


@pytest.fixture
def make_queue(state_file, clock):
    """
    Factory for isolated BuildQueues backed by the per-test state file.

    Queues are closed after the test so no callback threads leak.
    """
    created = []

    def _make(**kwargs) -> BuildQueue:
        store = kwargs.pop("store", None) or JsonFileStore(state_file)
        kwargs.setdefault("clock", clock)
        queue = BuildQueue(store, **kwargs)
        created.append(queue)
        return queue

    yield _make

    for queue in created:
        queue.close()


@pytest.fixture
def api_queue(make_queue):
    """Queue used behind the HTTP client: 1 slot, admin id 9001, no-op executor."""
    queue = make_queue(max_concurrent=1, admin_ids=["9001"])
    queue.on_start = lambda identity, payload, kind, display_name: None
    return queue


@pytest_asyncio.fixture
async def client(api_queue):
    """
    Create a test HTTP client that talks directly to the FastAPI app.

    dependency_overrides swaps the lifespan-built queue for the test queue
    and disables the worker pool, so builds stay "running" until a test
    releases them through the API.
    """
    app = create_app()

    async def override_get_queue():
        return api_queue

    async def override_get_workers():
        return None

    app.dependency_overrides[get_queue] = override_get_queue
    app.dependency_overrides[get_workers] = override_get_workers

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

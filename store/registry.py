"""
State store factory — maps backend names to store constructors.

Same Factory pattern as jobs/registry.py: one place that knows how to turn
configuration into a concrete store.
"""

from redis import Redis

from config.settings import Settings
from store.base import AbstractStateStore
from store.file_store import JsonFileStore
from store.redis_store import RedisStateStore


def create_store(config: Settings) -> AbstractStateStore:
    """
    Create the state store selected by STATE_BACKEND.

        STATE_BACKEND=file  → JsonFileStore(QUEUE_FILE)
        STATE_BACKEND=redis → RedisStateStore(Redis(REDIS_*), REDIS_STATE_KEY)
    """
    backend = config.STATE_BACKEND.lower()
    if backend == "file":
        return JsonFileStore(config.QUEUE_FILE)
    if backend == "redis":
        return RedisStateStore(Redis.from_url(config.redis_url), key=config.REDIS_STATE_KEY)
    raise ValueError(f"Unknown state backend: {config.STATE_BACKEND!r}. Available: ['file', 'redis']")

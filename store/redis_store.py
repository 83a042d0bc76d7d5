"""
Redis state store.

Keeps the same JSON document as JsonFileStore under a single Redis key, so
several API replicas on one host can share queued work and history after a
restart (they still must not run concurrently against the same key — the
scheduler is single-process by design).

Uses the SYNC redis client: save() is called while the BuildQueue holds its
threading lock, never from inside the event loop.
"""

import json
import logging

from redis import Redis
from redis.exceptions import RedisError

from store.base import AbstractStateStore, QueueSnapshot

logger = logging.getLogger(__name__)


class RedisStateStore(AbstractStateStore):

    DEFAULT_KEY = "buildqueue:state"

    def __init__(self, redis_client: Redis, key: str = DEFAULT_KEY):
        self._redis = redis_client
        self._key = key

    def load(self) -> QueueSnapshot:
        try:
            raw = self._redis.get(self._key)
        except RedisError as e:
            logger.error(f"Failed to load queue from Redis key {self._key}: {e}")
            return QueueSnapshot()

        if not raw:
            return QueueSnapshot()

        try:
            snapshot = QueueSnapshot.from_document(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Corrupt queue document in Redis key {self._key}: {e}")
            return QueueSnapshot()

        logger.info(f"Loaded queue: {len(snapshot.queue)} pending builds")
        return snapshot

    def save(self, snapshot: QueueSnapshot) -> bool:
        try:
            self._redis.set(self._key, json.dumps(snapshot.to_document()))
        except (RedisError, TypeError, ValueError) as e:
            logger.error(f"Failed to save queue to Redis key {self._key}: {e}")
            return False
        return True

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False

    @property
    def backend_name(self) -> str:
        return "redis"

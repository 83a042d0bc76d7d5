"""
JSON file state store.

The whole queue document is rewritten on every save. Queues here are small
(tens of entries), so a full rewrite is simpler than any incremental format.

Writes go to a temporary file in the same directory first and are then moved
into place with os.replace(), which is atomic on POSIX and Windows. A crash
mid-write leaves the previous document intact instead of a truncated one.
"""

import json
import logging
import os
from pathlib import Path

from store.base import AbstractStateStore, QueueSnapshot

logger = logging.getLogger(__name__)


class JsonFileStore(AbstractStateStore):

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> QueueSnapshot:
        if not self._path.exists():
            return QueueSnapshot()

        try:
            with self._path.open("r", encoding="utf-8") as f:
                snapshot = QueueSnapshot.from_document(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load queue from {self._path}: {e}")
            return QueueSnapshot()

        logger.info(f"Loaded queue: {len(snapshot.queue)} pending builds")
        return snapshot

    def save(self, snapshot: QueueSnapshot) -> bool:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(snapshot.to_document(), f, indent=2)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save queue to {self._path}: {e}")
            return False
        return True

    def ping(self) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self._path.parent, os.W_OK)

    @property
    def backend_name(self) -> str:
        return "file"

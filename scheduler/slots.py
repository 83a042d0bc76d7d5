"""
Slot registry — which submitters are building right now.

A dict keyed by submitter identity, so "one build per submitter" is enforced
by the data structure itself: a second reserve() for the same key fails
instead of overwriting.

The registry knows nothing about statistics or the queue; release() just
hands the removed ActiveJob back so the BuildQueue can do the bookkeeping.

Not thread-safe on its own. The BuildQueue calls it under its lock.
"""

import logging
from typing import Optional

from models.enums import JobKind
from models.job import ActiveJob, Identity

logger = logging.getLogger(__name__)


class SlotRegistry:

    def __init__(self, max_concurrent: int):
        self._max_concurrent = max_concurrent
        self._active: dict[Identity, ActiveJob] = {}

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def reserve(
        self,
        identity: Identity,
        payload: dict,
        kind: JobKind,
        display_name: str,
        now: float,
    ) -> bool:
        """Occupy a slot. Returns False (no mutation) if duplicate or full."""
        if identity in self._active:
            logger.info(f"Identity {identity} already building")
            return False

        if self.is_full():
            logger.info(f"Slots full ({len(self._active)}/{self._max_concurrent})")
            return False

        self._active[identity] = ActiveJob(
            identity=identity,
            display_name=display_name,
            kind=kind,
            payload=payload,
            started_at=now,
            last_activity_at=now,
        )
        return True

    def release(self, identity: Identity) -> Optional[ActiveJob]:
        return self._active.pop(identity, None)

    def release_all(self) -> list[ActiveJob]:
        jobs = list(self._active.values())
        self._active.clear()
        return jobs

    def touch(self, identity: Optional[Identity], now: float) -> None:
        """
        Refresh last_activity_at for one identity, or for every active job
        when identity is None (progress events that can't be attributed).
        An unknown identity is ignored.
        """
        if identity is not None:
            job = self._active.get(identity)
            if job is not None:
                job.last_activity_at = now
            return

        for job in self._active.values():
            job.last_activity_at = now

    def get(self, identity: Identity) -> Optional[ActiveJob]:
        return self._active.get(identity)

    def contains(self, identity: Identity) -> bool:
        return identity in self._active

    def is_full(self) -> bool:
        return len(self._active) >= self._max_concurrent

    def jobs(self) -> list[ActiveJob]:
        return list(self._active.values())

    def size(self) -> int:
        return len(self._active)

    def __len__(self) -> int:
        return len(self._active)

"""
Admission queue — pending build requests in a stable two-bucket order.

    ┌──────────────── priority ───────────────┐┌────────── normal ──────────┐
    │ P1 → P2 → P3 (FIFO among themselves)    ││ N1 → N2 → N3 (FIFO)        │
    └─────────────────────────────────────────┘└────────────────────────────┘
                                             ▲
                         new priority entries are inserted here

This is NOT a priority heap. There are only two tiers, and arrival order
inside each tier must be preserved exactly, so a list with a single
"boundary" insert is both simpler and stable. A heap would need an extra
insertion counter to get the same guarantee.

Data structure: collections.deque
- append normal:         O(1)
- insert priority:       O(n) scan for the boundary
- pop head / push front: O(1)
- remove by identity:    O(n)

Queues are short (a handful of waiting submitters), so O(n) is fine.

Each identity appears at most once — add() refuses duplicates. Callers that
want "resubmission replaces" must remove() first.

Not thread-safe on its own. The BuildQueue calls it under its lock.
"""

from collections import deque
from typing import Iterator, Optional

from models.job import Identity, JobRequest


class AdmissionQueue:

    def __init__(self, items: Optional[list[JobRequest]] = None):
        self._queue: deque[JobRequest] = deque()
        for item in items or []:
            if not self.contains(item.identity):
                self._queue.append(item)

    def add(self, request: JobRequest) -> int:
        """
        Insert a request and return its 1-based position.

        Priority requests go right after the last priority entry;
        normal requests go to the back.
        """
        if self.contains(request.identity):
            raise ValueError(f"Identity {request.identity!r} is already queued")

        if not request.priority:
            self._queue.append(request)
            return len(self._queue)

        boundary = len(self._queue)
        for index, item in enumerate(self._queue):
            if not item.priority:
                boundary = index
                break
        self._queue.insert(boundary, request)
        return boundary + 1

    def remove(self, identity: Identity) -> Optional[JobRequest]:
        for item in self._queue:
            if item.identity == identity:
                self._queue.remove(item)
                return item
        return None

    def pop(self) -> Optional[JobRequest]:
        return self._queue.popleft() if self._queue else None

    def push_front(self, request: JobRequest) -> None:
        """Return a request to the head after a failed promotion."""
        self._queue.appendleft(request)

    def peek(self) -> Optional[JobRequest]:
        return self._queue[0] if self._queue else None

    def position(self, identity: Identity) -> int:
        """1-based position of `identity`, or 0 if it is not queued."""
        for index, item in enumerate(self._queue):
            if item.identity == identity:
                return index + 1
        return 0

    def contains(self, identity: Identity) -> bool:
        return any(item.identity == identity for item in self._queue)

    def clear(self) -> int:
        count = len(self._queue)
        self._queue.clear()
        return count

    def items(self) -> list[JobRequest]:
        return list(self._queue)

    def size(self) -> int:
        return len(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[JobRequest]:
        return iter(list(self._queue))

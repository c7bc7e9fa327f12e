"""In-memory delay store — heap-ordered, NOT durable.

Entries are lost when the process exits. Use the Redis or DynamoDB backend
where pending submissions must survive a restart.
"""

from __future__ import annotations

import heapq
import itertools
import threading
from typing import Callable, Optional

from pollflow.models.pipeline import DelayedEntry, epoch_millis
from pollflow.models.submission import Submission


class MemoryDelayStore:
    """Dict + heap backed IDelayStore for single-process deployments and tests."""

    durable = False

    def __init__(self, clock: Callable[[], int] = epoch_millis) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._heap: list[tuple[int, int, str]] = []
        self._entries: dict[str, DelayedEntry] = {}
        self._seq = itertools.count()
        self.scheduled_total = 0
        self.released_total = 0

    def schedule(
        self, submission: Submission, attempt: int, delay: int, *, journey_id: str
    ) -> DelayedEntry:
        entry = DelayedEntry(
            journey_id=journey_id,
            submission=submission,
            attempt=attempt,
            release_at=self._clock() + max(delay, 0),
        )
        with self._lock:
            self._entries[entry.entry_id] = entry
            heapq.heappush(self._heap, (entry.release_at, next(self._seq), entry.entry_id))
            self.scheduled_total += 1
        return entry

    def release_due(self, now: Optional[int] = None, limit: int = 100) -> list[DelayedEntry]:
        now = self._clock() if now is None else now
        released: list[DelayedEntry] = []
        with self._lock:
            while self._heap and len(released) < limit:
                release_at, _, entry_id = self._heap[0]
                if release_at > now:
                    break
                heapq.heappop(self._heap)
                entry = self._entries.pop(entry_id, None)
                if entry is not None:
                    released.append(entry)
            self.released_total += len(released)
        return released

    def next_release_at(self) -> Optional[int]:
        with self._lock:
            return self._heap[0][0] if self._heap else None

    def pending(self) -> int:
        with self._lock:
            return len(self._entries)

"""DelayPoller — turns due delay-store entries into release events for the router.

A single asyncio task serves every pending entry: it sleeps until the
earliest release time (or ``poll_interval``, whichever is sooner), then
drains whatever is due.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import structlog

from pollflow.core.exceptions import DelayStoreError
from pollflow.core.protocols import IDelayStore
from pollflow.models.pipeline import epoch_millis
from pollflow.orchestration.router import PipelineRouter


class DelayPoller:
    """Releases due entries from ``store`` and hands each to ``router.on_release``."""

    def __init__(
        self,
        store: IDelayStore,
        router: PipelineRouter,
        *,
        poll_interval: float = 0.5,
        batch_size: int = 100,
        clock: Callable[[], int] = epoch_millis,
    ) -> None:
        self._store = store
        self._router = router
        self._poll_interval = poll_interval
        self._batch_size = max(1, batch_size)
        self._clock = clock
        self._stop = asyncio.Event()
        self.released_total = 0
        self.logger = structlog.get_logger("pollflow.poller")

    def drain(self, now: Optional[int] = None) -> int:
        """Release and route every entry due at ``now``. Returns how many were released."""
        now = self._clock() if now is None else now
        count = 0
        while True:
            batch = self._store.release_due(now=now, limit=self._batch_size)
            for entry in batch:
                count += 1
                try:
                    self._router.on_release(entry)
                except Exception:
                    self.logger.exception(
                        "release handling failed",
                        entry_id=entry.entry_id,
                        journey_id=entry.journey_id,
                        submission_id=entry.submission.submission_id,
                    )
            if len(batch) < self._batch_size:
                break
        self.released_total += count
        return count

    def _sleep_seconds(self) -> float:
        next_at = self._store.next_release_at()
        if next_at is None:
            return self._poll_interval
        return min(self._poll_interval, max(0.0, (next_at - self._clock()) / 1000))

    async def run(self) -> None:
        """Drain due entries until stop() is called."""
        self.logger.info("delay poller started", durable=self._store.durable)
        while not self._stop.is_set():
            try:
                released = await asyncio.to_thread(self.drain)
                if released:
                    self.logger.debug("released delayed entries", count=released)
                timeout = await asyncio.to_thread(self._sleep_seconds)
            except DelayStoreError as exc:
                self.logger.error("delay store unreachable", error=str(exc))
                timeout = self._poll_interval
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
        self.logger.info("delay poller stopped", released_total=self.released_total)

    def stop(self) -> None:
        self._stop.set()

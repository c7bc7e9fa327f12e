"""Shared test doubles — re-export in-memory backends and a controllable clock."""

from __future__ import annotations

from pollflow.orchestration.handlers import RecordingHandler
from pollflow.orchestration.journey_log import MemoryJourneyLog
from pollflow.persistence.memory_backend import MemoryDelayStore
from pollflow.readiness.static import ScriptedReadinessChecker, StaticReadinessChecker


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> int:
        self.now += millis
        return self.now


__all__ = [
    "FakeClock",
    "MemoryDelayStore",
    "MemoryJourneyLog",
    "RecordingHandler",
    "ScriptedReadinessChecker",
    "StaticReadinessChecker",
]

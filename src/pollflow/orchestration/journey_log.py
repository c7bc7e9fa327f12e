"""In-memory transition log."""

from __future__ import annotations

import threading
from typing import Optional

from pollflow.models.pipeline import JourneyState, Transition


class MemoryJourneyLog:
    """ITransitionListener that keeps every transition in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.transitions: list[Transition] = []

    def on_transition(self, transition: Transition) -> None:
        with self._lock:
            self.transitions.append(transition)

    def for_journey(self, journey_id: str) -> list[Transition]:
        with self._lock:
            return [t for t in self.transitions if t.journey_id == journey_id]

    def for_submission(self, submission_id: str) -> list[Transition]:
        with self._lock:
            return [t for t in self.transitions if t.submission_id == submission_id]

    def attempts(self, journey_id: str) -> list[Optional[int]]:
        """Attempt counter at each poll of the journey, in order."""
        return [
            t.attempt for t in self.for_journey(journey_id)
            if t.target == JourneyState.POLLING
        ]

    def final_state(self, journey_id: str) -> Optional[JourneyState]:
        journey = self.for_journey(journey_id)
        return journey[-1].target if journey else None

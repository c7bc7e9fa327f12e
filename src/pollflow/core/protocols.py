"""Protocol interfaces for all PollFlow abstractions.

All inter-component communication uses these Protocols — structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from pollflow.models.pipeline import DelayedEntry, Transition
from pollflow.models.submission import Submission


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

@runtime_checkable
class IReadinessChecker(Protocol):
    """Decides whether a submission is ready now.

    Returns a copy of the submission with ``status`` set to READY or NOT_READY.
    """

    def check(self, submission: Submission) -> Submission: ...


# ---------------------------------------------------------------------------
# Persistence: Delay Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IDelayStore(Protocol):
    """Holds not-ready submissions until their release time."""

    durable: bool

    def schedule(
        self, submission: Submission, attempt: int, delay: int, *, journey_id: str
    ) -> DelayedEntry: ...

    def release_due(self, now: Optional[int] = None, limit: int = 100) -> list[DelayedEntry]: ...

    def next_release_at(self) -> Optional[int]: ...

    def pending(self) -> int: ...


# ---------------------------------------------------------------------------
# Terminal handlers
# ---------------------------------------------------------------------------

@runtime_checkable
class ITerminalHandler(Protocol):
    """Final sink for a journey outcome (ready or timed out)."""

    def handle(self, submission: Submission, journey_id: str, attempt: Optional[int]) -> None: ...


# ---------------------------------------------------------------------------
# Journey observation
# ---------------------------------------------------------------------------

@runtime_checkable
class ITransitionListener(Protocol):
    """Observer notified of every journey state transition."""

    def on_transition(self, transition: Transition) -> None: ...

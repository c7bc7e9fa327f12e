"""Terminal handlers — final sinks for ready and timed-out journeys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from pollflow.models.submission import Submission


class LoggingReadyHandler:
    """ITerminalHandler that logs a ready submission."""

    def __init__(self) -> None:
        self.logger = structlog.get_logger("pollflow.handlers.ready")

    def handle(self, submission: Submission, journey_id: str, attempt: Optional[int]) -> None:
        self.logger.info(
            "Handling ready submission",
            submission_id=submission.submission_id,
            journey_id=journey_id,
            attempt=attempt,
            description=submission.description,
        )


class LoggingTimeoutHandler:
    """ITerminalHandler that logs a timed-out submission."""

    def __init__(self) -> None:
        self.logger = structlog.get_logger("pollflow.handlers.timeout")

    def handle(self, submission: Submission, journey_id: str, attempt: Optional[int]) -> None:
        self.logger.warning(
            "Handling timed-out submission",
            submission_id=submission.submission_id,
            journey_id=journey_id,
            attempt=attempt,
            description=submission.description,
        )


@dataclass(frozen=True)
class Outcome:
    submission: Submission
    journey_id: str
    attempt: Optional[int]


class RecordingHandler:
    """ITerminalHandler that keeps every outcome in a list (for tests)."""

    def __init__(self) -> None:
        self.outcomes: list[Outcome] = []

    def handle(self, submission: Submission, journey_id: str, attempt: Optional[int]) -> None:
        self.outcomes.append(Outcome(submission, journey_id, attempt))

    def submission_ids(self) -> list[str]:
        return [o.submission.submission_id for o in self.outcomes]

"""PollFlow exception hierarchy."""

from __future__ import annotations


class PollFlowError(Exception):
    """Base exception for all PollFlow errors."""


class ReadinessCheckError(PollFlowError):
    """External readiness check failed to answer."""

    def __init__(self, submission_id: str, message: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"Readiness check for {submission_id} failed: {message}")


class DelayStoreError(PollFlowError):
    """Delay store backend operation failed."""


class DelayStoreUnavailableError(DelayStoreError):
    """Scheduling kept failing after all retries; the journey cannot continue."""

    def __init__(self, submission_id: str, journey_id: str, attempts: int) -> None:
        self.submission_id = submission_id
        self.journey_id = journey_id
        self.attempts = attempts
        super().__init__(
            f"Could not schedule {submission_id} (journey {journey_id}) after {attempts} attempts"
        )


class InvariantViolationError(PollFlowError):
    """A released entry carries a missing or corrupt attempt counter."""

    def __init__(self, entry_id: str, attempt: object) -> None:
        self.entry_id = entry_id
        self.attempt = attempt
        super().__init__(f"Entry {entry_id} released with invalid attempt counter {attempt!r}")

"""Guard that makes any readiness checker total."""

from __future__ import annotations

import structlog

from pollflow.core.protocols import IReadinessChecker
from pollflow.models.submission import Submission, SubmissionStatus


class GuardedReadinessChecker:
    """Wraps a checker so a failing check yields NOT_READY instead of an error.

    The normal retry/timeout path then resolves the submission eventually.
    """

    def __init__(self, inner: IReadinessChecker) -> None:
        self._inner = inner
        self.failures = 0
        self.logger = structlog.get_logger("pollflow.readiness")

    @property
    def inner(self) -> IReadinessChecker:
        return self._inner

    def check(self, submission: Submission) -> Submission:
        try:
            result = self._inner.check(submission)
        except Exception as exc:
            self.failures += 1
            self.logger.warning(
                "readiness check failed",
                submission_id=submission.submission_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return submission.with_status(SubmissionStatus.NOT_READY)

        if result.status not in (SubmissionStatus.READY, SubmissionStatus.NOT_READY):
            self.logger.warning(
                "readiness check returned undecided status",
                submission_id=submission.submission_id,
                status=str(result.status),
            )
            return submission.with_status(SubmissionStatus.NOT_READY)

        # Only the status may change; everything else comes from the input.
        return submission.with_status(result.status)

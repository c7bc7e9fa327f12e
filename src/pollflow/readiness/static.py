"""Deterministic readiness checkers for local development and testing."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from pollflow.models.submission import Submission, SubmissionStatus


def _status(ready: bool) -> SubmissionStatus:
    return SubmissionStatus.READY if ready else SubmissionStatus.NOT_READY


class StaticReadinessChecker:
    """Always ready, or never ready."""

    def __init__(self, ready: bool) -> None:
        self._ready = ready
        self.calls = 0

    def check(self, submission: Submission) -> Submission:
        self.calls += 1
        return submission.with_status(_status(self._ready))


class ScriptedReadinessChecker:
    """Plays back a per-submission script of outcomes.

    Once a script is used up the last outcome repeats. Submissions without a
    script get ``default``.
    """

    def __init__(self, default: bool = False) -> None:
        self._default = default
        self._scripts: dict[str, list[bool]] = {}
        self._calls: dict[str, int] = defaultdict(int)

    def set_script(self, submission_id: str, outcomes: Iterable[bool]) -> None:
        self._scripts[submission_id] = list(outcomes)

    def calls(self, submission_id: str) -> int:
        return self._calls[submission_id]

    def check(self, submission: Submission) -> Submission:
        sid = submission.submission_id
        index = self._calls[sid]
        self._calls[sid] += 1

        script = self._scripts.get(sid)
        if not script:
            return submission.with_status(_status(self._default))
        return submission.with_status(_status(script[min(index, len(script) - 1)]))

"""Random readiness checker — stands in for an external readiness signal."""

from __future__ import annotations

import random
from typing import Optional

from pollflow.models.submission import Submission, SubmissionStatus


class RandomReadinessChecker:
    """IReadinessChecker that reports READY with a fixed probability (1/6 by default)."""

    def __init__(self, probability: float = 1 / 6, seed: Optional[int] = None) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be within [0, 1], got {probability}")
        self._probability = probability
        self._rng = random.Random(seed)

    def check(self, submission: Submission) -> Submission:
        ready = self._rng.random() < self._probability
        return submission.with_status(
            SubmissionStatus.READY if ready else SubmissionStatus.NOT_READY
        )

"""Journey state, delayed entries and transition records."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from pollflow.models.submission import Submission


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class JourneyState(StrEnum):
    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    READY = "READY"
    NOT_READY_PENDING_DELAY = "NOT_READY_PENDING_DELAY"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in (JourneyState.READY, JourneyState.TIMED_OUT)


class DelayedEntry(BaseModel):
    """A not-ready submission waiting in the delay store.

    ``attempt`` is the counter value at schedule time. It is ``None`` only
    when a stored payload could not be decoded; the router treats that as an
    invariant violation.
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=new_id)
    journey_id: str
    submission: Submission
    attempt: Optional[StrictInt] = None
    release_at: int  # epoch milliseconds

    def to_payload(self) -> str:
        return json.dumps(
            {
                "entryId": self.entry_id,
                "journeyId": self.journey_id,
                "submission": self.submission.to_wire(),
                "attempt": self.attempt,
                "releaseAt": self.release_at,
            }
        )

    @classmethod
    def from_payload(cls, raw: str, *, entry_id: str, release_at: int) -> DelayedEntry:
        """Decode a stored payload without ever losing the entry.

        Anything unreadable about the attempt counter yields ``attempt=None``.
        An unreadable submission is replaced by a placeholder carrying the
        stored id so the entry can still reach a terminal handler.
        """
        try:
            data: dict[str, Any] = json.loads(raw)
        except (TypeError, ValueError):
            data = {}
        if not isinstance(data, dict):
            data = {}

        try:
            submission = Submission.from_wire(data.get("submission") or {})
        except ValidationError:
            sub = data.get("submission")
            sub_id = sub.get("submissionId") if isinstance(sub, dict) else None
            submission = Submission(submission_id=str(sub_id or f"unknown-{entry_id}"))

        attempt = data.get("attempt")
        if not isinstance(attempt, int) or isinstance(attempt, bool):
            attempt = None

        return cls(
            entry_id=entry_id,
            journey_id=str(data.get("journeyId") or entry_id),
            submission=submission,
            attempt=attempt,
            release_at=release_at,
        )


class Transition(BaseModel):
    """One recorded state change of a journey."""

    journey_id: str
    submission_id: str
    source: JourneyState
    target: JourneyState
    attempt: Optional[int] = None
    at: datetime = Field(default_factory=utcnow)

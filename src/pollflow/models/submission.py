"""Submission — the unit of work that travels through the pipeline.

The wire shape uses camelCase (``submissionId``) while Python code uses
snake_case; both are accepted on input.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubmissionStatus(StrEnum):
    UNKNOWN = "UNKNOWN"
    READY = "READY"
    NOT_READY = "NOT_READY"


class Submission(BaseModel):
    """Immutable submission record. Status is only ever set by a readiness check."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    submission_id: str = Field(alias="submissionId")
    description: str = ""
    delay: int = Field(default=0, ge=0)  # milliseconds
    status: SubmissionStatus = SubmissionStatus.UNKNOWN

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> SubmissionStatus:
        # Callers may send any status; it is advisory and gets reset on submit.
        try:
            return SubmissionStatus(value)
        except (ValueError, TypeError):
            return SubmissionStatus.UNKNOWN

    def with_status(self, status: SubmissionStatus) -> Submission:
        return self.model_copy(update={"status": status})

    def reset_status(self) -> Submission:
        """Drop any caller-provided status."""
        return self.with_status(SubmissionStatus.UNKNOWN)

    @property
    def is_ready(self) -> bool:
        return self.status == SubmissionStatus.READY

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Submission:
        return cls.model_validate(data)

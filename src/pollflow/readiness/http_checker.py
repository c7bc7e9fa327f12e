"""HTTP readiness checker backed by an external readiness service."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx

from pollflow.core.exceptions import ReadinessCheckError
from pollflow.models.submission import Submission, SubmissionStatus


class HttpReadinessChecker:
    """Production IReadinessChecker asking ``GET {base_url}/submissions/{id}/readiness``.

    The service must answer ``{"ready": true|false}``. Transport errors,
    non-2xx responses and malformed bodies raise ReadinessCheckError; wrap
    this checker in GuardedReadinessChecker to turn those into NOT_READY.
    """

    def __init__(self, base_url: str, timeout: float = 5.0,
                 client: Optional[httpx.Client] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def check(self, submission: Submission) -> Submission:
        sid = submission.submission_id
        url = f"{self._base_url}/submissions/{quote(sid, safe='')}/readiness"
        try:
            resp = self._client.get(url)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise ReadinessCheckError(sid, str(exc)) from exc
        except ValueError as exc:
            raise ReadinessCheckError(sid, f"invalid JSON body: {exc}") from exc

        ready = body.get("ready") if isinstance(body, dict) else None
        if not isinstance(ready, bool):
            raise ReadinessCheckError(sid, f"unexpected response {body!r}")
        return submission.with_status(
            SubmissionStatus.READY if ready else SubmissionStatus.NOT_READY
        )

    def close(self) -> None:
        self._client.close()

"""Submission ingress — accepts a submission and hands it to the pipeline."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Request

from pollflow.core.exceptions import PollFlowError
from pollflow.models.submission import Submission
from pollflow.orchestration.router import PipelineRouter

router = APIRouter(tags=["submissions"])
logger = structlog.get_logger("pollflow.api.submissions")


def _start_journey(pipeline_router: PipelineRouter, submission: Submission) -> None:
    # Fire-and-forget: pipeline errors are logged, never returned to the caller.
    try:
        pipeline_router.submit(submission)
    except PollFlowError as exc:
        logger.error(
            "submission journey aborted",
            submission_id=submission.submission_id,
            error=str(exc),
        )


@router.post("/", status_code=202, include_in_schema=False)
@router.post("/submissions", status_code=202)
async def submit(submission: Submission, request: Request, background_tasks: BackgroundTasks) -> dict:
    """Accept a submission for asynchronous polling."""
    background_tasks.add_task(_start_journey, request.app.state.pipeline.router, submission)
    return {"accepted": True, "submissionId": submission.submission_id}

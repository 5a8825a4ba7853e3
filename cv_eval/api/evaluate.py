# =============================================================================
# Evaluation API — Start an Evaluation and Poll for the Result
# =============================================================================
#
# ENDPOINTS:
#   POST /evaluate     — queue an evaluation for an upload, 202 + job id
#   GET  /result/{id}  — job view; shape depends on the job status
#
# The evaluation runs in the background (one asyncio task per job), so
# POST /evaluate returns before any LLM call is made. Clients poll
# GET /result/{id} until the status is completed or failed.
# =============================================================================

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from cv_eval.api.deps import get_orchestrator
from cv_eval.agents.orchestrator import EvaluationOrchestrator
from cv_eval.models.requests import EvaluateRequest
from cv_eval.models.responses import EvaluateResponse, JobViewResponse
from cv_eval.services.jobs import EvaluationJob, JobStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Evaluation"])


def _seconds(start: datetime, end: datetime) -> str:
    return f"{(end - start).total_seconds():.1f}s"


def job_view(job: EvaluationJob) -> JobViewResponse:
    """Status-dependent view of a job."""
    if job.status == JobStatus.COMPLETED:
        return JobViewResponse(
            id=job.id,
            status=job.status.value,
            result=job.result,
            completed_at=job.completed_at,
            processing_time=_seconds(job.created_at, job.completed_at),
        )
    if job.status == JobStatus.FAILED:
        return JobViewResponse(
            id=job.id,
            status=job.status.value,
            error=job.error,
            message=job.message,
            failed_at=job.failed_at,
        )
    return JobViewResponse(
        id=job.id,
        status=job.status.value,
        message=job.message,
        created_at=job.created_at,
        elapsed_time=_seconds(job.created_at, datetime.now(UTC)),
    )


# ---------------------------------------------------------------------------
# POST /evaluate
# ---------------------------------------------------------------------------


@router.post(
    "/evaluate",
    response_model=EvaluateResponse,
    status_code=202,
    summary="Start evaluating an upload",
    description=(
        "Queues the CV and project report of an upload for evaluation and "
        "returns immediately with a job id. Poll GET /result/{id}."
    ),
)
async def start_evaluation(
    request: EvaluateRequest,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
) -> EvaluateResponse:
    job_id = await orchestrator.submit(request.upload_id)
    return EvaluateResponse(id=job_id, check_result=f"/result/{job_id}")


# ---------------------------------------------------------------------------
# GET /result/{job_id}
# ---------------------------------------------------------------------------


@router.get(
    "/result/{job_id}",
    response_model=JobViewResponse,
    response_model_exclude_none=True,
    summary="Get evaluation status or result",
)
async def get_result(
    job_id: str,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
) -> JobViewResponse:
    return job_view(orchestrator.get_status(job_id))

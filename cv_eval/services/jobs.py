# =============================================================================
# Evaluation Jobs — Status State Machine
# =============================================================================
#
#   queued ──▶ processing ──▶ completed
#                  │  ▲
#                  │  └── message updates (stays processing)
#                  └────▶ failed
#
# completed and failed are terminal. Each transition returns a NEW frozen
# EvaluationJob; the orchestrator writes it back to the job repository.
# Illegal transitions raise InvalidTransitionError, so a job can never be
# observed moving backwards or having both a result and an error.
# =============================================================================

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cv_eval.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from cv_eval.models.evaluation import EvaluationResult


class JobStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


_ALLOWED: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class EvaluationJob:
    """Immutable snapshot of one evaluation job."""

    upload_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.QUEUED
    message: str = "Evaluation queued for processing"
    created_at: datetime = field(default_factory=_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    result: EvaluationResult | None = None
    error: str | None = None

    def _transition(self, status: JobStatus, **changes) -> EvaluationJob:
        if status not in _ALLOWED[self.status]:
            raise InvalidTransitionError(
                f"Job {self.id}: cannot move from {self.status.value} to {status.value}"
            )
        return replace(self, status=status, **changes)

    def start(self, message: str) -> EvaluationJob:
        return self._transition(JobStatus.PROCESSING, message=message, started_at=_now())

    def progress(self, message: str) -> EvaluationJob:
        # Message-only update; only start() leaves queued
        if self.status is not JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Job {self.id}: cannot update progress while {self.status.value}"
            )
        return replace(self, message=message)

    def complete(self, result: EvaluationResult, message: str) -> EvaluationJob:
        return self._transition(
            JobStatus.COMPLETED, result=result, message=message, completed_at=_now(),
        )

    def fail(self, error: str, message: str) -> EvaluationJob:
        return self._transition(
            JobStatus.FAILED, error=error, message=message, failed_at=_now(),
        )

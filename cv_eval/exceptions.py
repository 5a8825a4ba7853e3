# =============================================================================
# Domain Exceptions and HTTP Error Handlers
# =============================================================================
#
# Error taxonomy:
#   InvalidUploadIdError        → 400, job is never created
#   NotFoundError               → 404, unknown job / upload / document
#   MissingQueryError           → 400, empty search query
#   ExternalCallExhaustedError  → internal, always converted to a fallback
#   MalformedModelResponseError → internal, always converted to a fallback
#   StageFailureError           → marks the job failed, never retried
#   InvalidTransitionError      → programming error in the job state machine
# =============================================================================

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EvaluatorError(Exception):
    """Base exception for service layer errors."""

    status_code = 500


class InvalidUploadIdError(EvaluatorError):
    """Raised when an evaluation is requested for a missing upload id."""

    status_code = 400

    def __init__(self, upload_id: str | None) -> None:
        self.upload_id = upload_id
        super().__init__(
            f"Invalid upload ID {upload_id!r}. Upload files via POST /upload "
            "first, then use the returned upload_id."
        )


class NotFoundError(EvaluatorError):
    """Raised when a job, upload, or reference document does not exist."""

    status_code = 404

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier!r} not found")


class MissingQueryError(EvaluatorError):
    """Raised when a document search is issued without a query."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__(
            "Query parameter 'q' is required, "
            "e.g. /vectordb/search?q=backend%20skills&limit=2"
        )


class ExternalCallExhaustedError(EvaluatorError):
    """All attempts to reach the LLM provider failed."""

    def __init__(
        self,
        attempts: int,
        last_error: BaseException | None,
        records: tuple = (),
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.records = records
        super().__init__(f"LLM call failed after {attempts} attempts: {last_error}")


class MalformedModelResponseError(EvaluatorError):
    """The LLM answered, but not in the structure the stage expects."""


class StageFailureError(EvaluatorError):
    """An unrecoverable error inside a pipeline stage."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)


class InvalidTransitionError(EvaluatorError):
    """A job was asked to move to a status its current status cannot reach."""


async def evaluator_exception_handler(
    request: Request,
    exc: EvaluatorError,
) -> JSONResponse:
    """Map domain errors to JSON responses with their status code."""
    if exc.status_code >= 500:
        logger.error("Service error in %s: %s", request.url.path, exc, exc_info=True)
    else:
        logger.info("Client error in %s: %s", request.url.path, exc)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": str(exc),
            "type": exc.__class__.__name__,
        },
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unexpected error in %s", request.url.path)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "type": "InternalError",
        },
    )

# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# The job view returned by GET /result/{id} depends on the job's status:
#   queued / processing → {status, message, created_at, elapsed_time}
#   completed           → {status, result, completed_at, processing_time}
#   failed              → {status, error, message, failed_at}
# Unset fields are excluded from the JSON so each view carries only its keys.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, Field

from cv_eval.models.evaluation import EvaluationResult


class ServiceInfoResponse(BaseModel):
    """Response for GET / — what this service does and where to go next."""

    message: str
    version: str
    features: list[str]
    endpoints: dict[str, str]
    timestamp: datetime


class DocumentStoreStatusResponse(BaseModel):
    """Response for GET /vectordb/status."""

    initialized: bool
    document_count: int
    categories: list[str]
    total_chunks: int
    message: str | None = None


class HealthResponse(BaseModel):
    """Response for GET /health — liveness plus in-memory store counts."""

    status: str = "healthy"
    uptime: str
    storage: dict[str, int]
    vector_db: DocumentStoreStatusResponse
    llm_configured: bool
    timestamp: datetime


class UploadedFileInfo(BaseModel):
    name: str
    size: str
    type: str


class UploadResponse(BaseModel):
    """Response for POST /upload — the id to pass to POST /evaluate."""

    message: str = "Files uploaded successfully"
    upload_id: str
    files: dict[str, UploadedFileInfo]
    next_step: str


class UploadInfoResponse(BaseModel):
    """Response for GET /upload/{id}."""

    upload_id: str
    files: dict[str, UploadedFileInfo]
    uploaded_at: datetime
    status: str = "ready for evaluation"


class EvaluateResponse(BaseModel):
    """Response for POST /evaluate — the job was queued, poll for the result."""

    id: str = Field(description="Evaluation job ID")
    status: str = "queued"
    message: str = "AI evaluation started successfully"
    check_result: str


class JobViewResponse(BaseModel):
    """Response for GET /result/{id}; fields present depend on status."""

    id: str
    status: str
    message: str | None = None
    created_at: datetime | None = None
    elapsed_time: str | None = None
    result: EvaluationResult | None = None
    completed_at: datetime | None = None
    processing_time: str | None = None
    error: str | None = None
    failed_at: datetime | None = None


class SearchResultItem(BaseModel):
    document_id: str
    category: str
    chunks: list[str]
    relevance: int = Field(description="Number of matching chunks in the document")


class SearchResponse(BaseModel):
    """Response for GET /vectordb/search."""

    query: str
    results: list[SearchResultItem]
    total: int
    message: str


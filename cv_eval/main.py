# =============================================================================
# FastAPI Application — Entry Point
# =============================================================================
#
# Run with:
#   uvicorn cv_eval.main:app --reload
#   python -m cv_eval.main
#
# The lifespan handler builds the application-scoped services once:
#   DocumentStore (reference docs loaded) → app.state.document_store
#   upload / job repositories              → app.state.uploads / .jobs
#   EvaluationOrchestrator                 → app.state.orchestrator
# On shutdown it waits for in-flight evaluations to finish.
# =============================================================================

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, Request

from cv_eval.agents.orchestrator import EvaluationOrchestrator
from cv_eval.api import documents, evaluate, uploads
from cv_eval.api.deps import get_document_store, get_orchestrator, get_upload_repository
from cv_eval.api.documents import document_store_status
from cv_eval.config import settings
from cv_eval.exceptions import (
    EvaluatorError,
    evaluator_exception_handler,
    general_exception_handler,
)
from cv_eval.models.responses import HealthResponse, ServiceInfoResponse
from cv_eval.services.document_store import DocumentStore
from cv_eval.services.jobs import EvaluationJob
from cv_eval.services.llm import get_llm_provider
from cv_eval.services.reference_docs import load_reference_documents
from cv_eval.services.repository import InMemoryRepository, Repository
from cv_eval.services.resilience import ResilientLLM
from cv_eval.services.uploads import Upload

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = load_reference_documents(DocumentStore())
    app.state.document_store = store
    app.state.uploads = InMemoryRepository[Upload]()
    app.state.jobs = InMemoryRepository[EvaluationJob]()
    app.state.orchestrator = EvaluationOrchestrator(
        jobs=app.state.jobs,
        uploads=app.state.uploads,
        store=store,
        llm=ResilientLLM(get_llm_provider()),
    )
    app.state.started_at = time.monotonic()
    logger.info("%s v%s ready", settings.app_name, settings.app_version)

    yield

    if app.state.orchestrator.in_flight:
        logger.info(
            "Waiting for %d in-flight evaluations...",
            app.state.orchestrator.in_flight,
        )
    await app.state.orchestrator.join()


app = FastAPI(
    title=settings.app_name,
    description=(
        "Evaluates a candidate CV and project report with an LLM pipeline, "
        "retrieval-augmented prompts and rule-based fallbacks."
    ),
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_exception_handler(EvaluatorError, evaluator_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(uploads.router)
app.include_router(evaluate.router)
app.include_router(documents.router)


@app.get("/", response_model=ServiceInfoResponse, tags=["Service"])
async def service_info() -> ServiceInfoResponse:
    return ServiceInfoResponse(
        message=f"{settings.app_name} - Backend Service",
        version=settings.app_version,
        features=[
            "LLM-powered CV and project evaluation",
            "Retrieval-augmented prompts over reference documents",
            "Retry with exponential backoff and rule-based fallbacks",
            "Asynchronous job processing",
        ],
        endpoints={
            "upload": "POST /upload",
            "upload_info": "GET /upload/{id}",
            "evaluate": "POST /evaluate",
            "result": "GET /result/{id}",
            "vectordb_status": "GET /vectordb/status",
            "vectordb_search": "GET /vectordb/search?q=query&limit=3",
            "health": "GET /health",
        },
        timestamp=datetime.now(UTC),
    )


@app.get("/health", response_model=HealthResponse, tags=["Service"])
async def health_check(
    request: Request,
    store: DocumentStore = Depends(get_document_store),
    upload_repo: Repository[Upload] = Depends(get_upload_repository),
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    uptime = time.monotonic() - request.app.state.started_at
    return HealthResponse(
        uptime=f"{uptime:.0f}s",
        storage={
            "uploads": len(upload_repo),
            "evaluations": len(request.app.state.jobs),
        },
        vector_db=document_store_status(store),
        llm_configured=orchestrator.llm_configured,
        timestamp=datetime.now(UTC),
    )


def main() -> None:
    """Run the API server."""
    import uvicorn

    logger.info("Starting %s on %s:%d", settings.app_name, settings.host, settings.port)
    uvicorn.run(
        "cv_eval.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

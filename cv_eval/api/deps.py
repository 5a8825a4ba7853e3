# =============================================================================
# API Dependencies — Access to Application-Scoped Services
# =============================================================================
#
# The lifespan handler in cv_eval.main builds one document store, one pair
# of repositories and one orchestrator per application and stores them on
# `app.state`. Routes reach them through these dependencies, so tests can
# swap any of them with `app.dependency_overrides`.
# =============================================================================

from __future__ import annotations

from fastapi import Request

from cv_eval.agents.orchestrator import EvaluationOrchestrator
from cv_eval.services.document_store import DocumentStore
from cv_eval.services.repository import Repository
from cv_eval.services.uploads import Upload


def get_orchestrator(request: Request) -> EvaluationOrchestrator:
    return request.app.state.orchestrator


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_upload_repository(request: Request) -> Repository[Upload]:
    return request.app.state.uploads

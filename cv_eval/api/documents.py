# =============================================================================
# Document Store API — Status and Lexical Search
# =============================================================================
#
# ENDPOINTS:
#   GET /vectordb/status            — documents, categories, chunk count
#   GET /vectordb/search?q=&limit=  — documents ranked by matching chunks
#
# The paths keep the "vectordb" name clients already use, although the
# store ranks chunks lexically rather than by embedding similarity.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Query

from cv_eval.api.deps import get_document_store
from cv_eval.models.responses import (
    DocumentStoreStatusResponse,
    SearchResponse,
    SearchResultItem,
)
from cv_eval.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vectordb", tags=["Document Store"])


def document_store_status(store: DocumentStore) -> DocumentStoreStatusResponse:
    status = store.status()
    return DocumentStoreStatusResponse(
        initialized=status.initialized,
        document_count=status.document_count,
        categories=status.categories,
        total_chunks=status.total_chunks,
        message=(
            "Document store operational" if status.initialized
            else "Document store not initialized"
        ),
    )


@router.get(
    "/status",
    response_model=DocumentStoreStatusResponse,
    summary="Document store status",
)
async def get_status(
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStoreStatusResponse:
    return document_store_status(store)


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search the reference documents",
)
async def search_documents(
    q: str | None = Query(default=None, description="Search query"),
    limit: int = Query(default=3, ge=0, le=50, description="Maximum documents"),
    store: DocumentStore = Depends(get_document_store),
) -> SearchResponse:
    hits = store.search(q or "", limit)
    logger.info("Document search %r: %d results", q, len(hits))

    return SearchResponse(
        query=q,
        results=[
            SearchResultItem(
                document_id=hit.document_id,
                category=hit.category,
                chunks=hit.chunks,
                relevance=hit.relevance,
            )
            for hit in hits
        ],
        total=len(hits),
        message=f"Found {len(hits)} relevant documents",
    )

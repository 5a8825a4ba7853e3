# =============================================================================
# Document Store — In-Memory Reference Documents
# =============================================================================
#
# Holds the small, fixed set of reference documents used for prompt
# grounding (job requirements, scoring rubric). Each document is chunked
# into paragraphs and indexed by its most frequent keywords at load time.
#
# The store is populated once at startup (see reference_docs.py) and is
# read-only afterwards, so lookups need no locking.
#
# ARCHITECTURE:
#   DocumentStore
#   ├── load()                  — chunk + keyword-index a document
#   ├── search()                — rank() per document, documents by match count
#   ├── get_job_requirements()  — full text, or top chunks for a query
#   ├── get_scoring_rubric()    — full text, or top chunks for a query
#   └── status()                — initialized flag, counts, categories
# =============================================================================

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime

from cv_eval.config import settings
from cv_eval.exceptions import MissingQueryError, NotFoundError
from cv_eval.services.retrieval import rank

logger = logging.getLogger(__name__)

JOB_REQUIREMENTS_ID = "job-requirements"
SCORING_RUBRIC_ID = "scoring-rubric"

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_KEYWORD_PATTERN = re.compile(r"\b\w{3,}\b")

STOPWORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had",
    "her", "was", "one", "our", "out", "day", "get", "has", "him", "his",
    "how", "man", "new", "now", "old", "see", "two", "way", "who", "boy",
    "did", "its", "let", "put", "say", "she", "too", "use",
})


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class Document:
    """A reference document, pre-split into retrievable chunks."""

    id: str
    category: str
    content: str
    chunks: list[str]
    keywords: list[str]
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class SearchHit:
    """Matching chunks from one document for a search query."""

    document_id: str
    category: str
    chunks: list[str]

    @property
    def relevance(self) -> int:
        return len(self.chunks)


@dataclass(frozen=True)
class StoreStatus:
    initialized: bool
    document_count: int
    categories: list[str]
    total_chunks: int


# ---------------------------------------------------------------------------
# Chunking and Keywords
# ---------------------------------------------------------------------------


def chunk_document(content: str, min_length: int | None = None) -> list[str]:
    """Split on blank lines and keep trimmed paragraphs longer than min_length."""
    _min_length = settings.chunk_min_length if min_length is None else min_length
    paragraphs = (part.strip() for part in _PARAGRAPH_BREAK.split(content))
    return [p for p in paragraphs if len(p) > _min_length]


def extract_keywords(text: str, limit: int | None = None) -> list[str]:
    """Most frequent non-stopword tokens of three or more characters."""
    _limit = settings.keyword_limit if limit is None else limit
    words = [
        word
        for word in _KEYWORD_PATTERN.findall(text.lower())
        if word not in STOPWORDS
    ]
    # Counter.most_common keeps first-seen order among equal counts
    return [word for word, _ in Counter(words).most_common(_limit)]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class DocumentStore:
    """In-memory store of chunked reference documents."""

    def __init__(self, top_k: int | None = None) -> None:
        self._documents: dict[str, Document] = {}
        self._top_k = settings.retrieval_top_k if top_k is None else top_k
        self.initialized = False

    def load(self, document_id: str, content: str, category: str) -> Document:
        """Chunk, index and store a document, replacing any previous version."""
        document = Document(
            id=document_id,
            category=category,
            content=content,
            chunks=chunk_document(content),
            keywords=extract_keywords(content),
        )
        self._documents[document_id] = document
        logger.info(
            "Stored document: %s (%d chunks, category=%s)",
            document_id, len(document.chunks), category,
        )
        return document

    def get(self, document_id: str) -> Document:
        try:
            return self._documents[document_id]
        except KeyError:
            raise NotFoundError("Document", document_id) from None

    def has(self, document_id: str) -> bool:
        return document_id in self._documents

    def documents(self) -> list[Document]:
        return list(self._documents.values())

    # -----------------------------------------------------------------------
    # Retrieval
    # -----------------------------------------------------------------------

    def relevant_chunks(self, document_id: str, query: str) -> list[str]:
        return rank(self.get(document_id).chunks, query, self._top_k)

    def _content_for(self, document_id: str, query: str | None) -> str:
        if not query:
            return self.get(document_id).content
        return "\n\n".join(self.relevant_chunks(document_id, query))

    def get_job_requirements(self, query: str | None = None) -> str:
        """Full job description, or its chunks most relevant to `query`."""
        return self._content_for(JOB_REQUIREMENTS_ID, query)

    def get_scoring_rubric(self, query: str | None = None) -> str:
        """Full scoring rubric, or its chunks most relevant to `query`."""
        return self._content_for(SCORING_RUBRIC_ID, query)

    def search(self, query: str, limit: int = 5) -> list[SearchHit]:
        """
        Rank every document's chunks against `query`.

        Returns documents with at least one matching chunk, ordered by the
        number of matching chunks (descending, stable), at most `limit`.

        Raises:
            MissingQueryError: If the query is empty or whitespace.
        """
        if not query or not query.strip():
            raise MissingQueryError()

        hits = [
            SearchHit(
                document_id=document.id,
                category=document.category,
                chunks=rank(document.chunks, query, self._top_k),
            )
            for document in self._documents.values()
        ]
        hits = [hit for hit in hits if hit.relevance > 0]
        hits.sort(key=lambda hit: hit.relevance, reverse=True)
        return hits[:max(limit, 0)]

    def status(self) -> StoreStatus:
        documents = self.documents()
        return StoreStatus(
            initialized=self.initialized,
            document_count=len(documents),
            categories=list(dict.fromkeys(doc.category for doc in documents)),
            total_chunks=sum(len(doc.chunks) for doc in documents),
        )

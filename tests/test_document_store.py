# =============================================================================
# Unit Tests — Document Store
# =============================================================================
#
# Tests chunking, keyword extraction, search ordering and the reference
# document lookups. Everything is in memory; no fixtures beyond the
# bundled job description and rubric.
# =============================================================================

import pytest

from cv_eval.config import settings
from cv_eval.exceptions import MissingQueryError, NotFoundError
from cv_eval.services.document_store import (
    JOB_REQUIREMENTS_ID,
    SCORING_RUBRIC_ID,
    DocumentStore,
    chunk_document,
    extract_keywords,
)
from cv_eval.services.reference_docs import (
    JOB_REQUIREMENTS,
    SCORING_RUBRIC,
    load_reference_documents,
)

LONG_A = "Backend services built with Node.js and PostgreSQL for high throughput."
LONG_B = "Frontend dashboards rendered with React and styled with utility classes."


def _loaded_store() -> DocumentStore:
    return load_reference_documents(DocumentStore(top_k=3))


# ---------------------------------------------------------------------------
# Test: Chunking
# ---------------------------------------------------------------------------


class TestChunkDocument:
    """Tests for blank-line paragraph chunking."""

    def test_splits_on_blank_lines(self):
        chunks = chunk_document(f"{LONG_A}\n\n{LONG_B}")
        assert chunks == [LONG_A, LONG_B]

    def test_whitespace_only_lines_count_as_blank(self):
        chunks = chunk_document(f"{LONG_A}\n   \t\n{LONG_B}")
        assert len(chunks) == 2

    def test_short_paragraphs_dropped(self):
        chunks = chunk_document(f"Header\n\n{LONG_A}")
        assert chunks == [LONG_A]

    def test_exactly_min_length_dropped(self):
        assert chunk_document("x" * 50, min_length=50) == []
        assert chunk_document("x" * 51, min_length=50) == ["x" * 51]

    def test_chunks_are_trimmed(self):
        assert chunk_document(f"    {LONG_A}    ") == [LONG_A]


class TestExtractKeywords:
    """Tests for frequency-ranked keyword extraction."""

    def test_most_frequent_first(self):
        keywords = extract_keywords("redis redis redis python python docker")
        assert keywords[:3] == ["redis", "python", "docker"]

    def test_stopwords_and_short_words_removed(self):
        keywords = extract_keywords("the and for go ai backend")
        assert keywords == ["backend"]

    def test_ties_keep_first_seen_order(self):
        assert extract_keywords("zeta alpha beta") == ["zeta", "alpha", "beta"]

    def test_limit(self):
        text = " ".join(f"word{i}" for i in range(40))
        assert len(extract_keywords(text, limit=20)) == 20


# ---------------------------------------------------------------------------
# Test: Store
# ---------------------------------------------------------------------------


class TestDocumentStore:
    """Tests for loading, lookups and status."""

    def test_load_and_get(self):
        store = DocumentStore()
        doc = store.load("doc-1", f"{LONG_A}\n\n{LONG_B}", "notes")
        assert store.get("doc-1") is doc
        assert doc.chunks == [LONG_A, LONG_B]
        assert doc.keywords

    def test_get_missing_raises_not_found(self):
        with pytest.raises(NotFoundError):
            DocumentStore().get("missing")

    def test_reference_documents_loaded(self):
        store = _loaded_store()
        assert store.has(JOB_REQUIREMENTS_ID)
        assert store.has(SCORING_RUBRIC_ID)
        assert store.initialized

    def test_full_content_without_query(self):
        store = _loaded_store()
        assert store.get_job_requirements() == JOB_REQUIREMENTS
        assert store.get_scoring_rubric() == SCORING_RUBRIC

    def test_ranked_chunks_with_query(self):
        store = _loaded_store()
        content = store.get_job_requirements("databases PostgreSQL Redis")
        assert "PostgreSQL" in content
        assert len(content) < len(JOB_REQUIREMENTS)

    def test_missing_reference_document(self):
        with pytest.raises(NotFoundError):
            DocumentStore().get_scoring_rubric()

    def test_status(self):
        status = _loaded_store().status()
        assert status.initialized is True
        assert status.document_count == 2
        assert status.categories == ["job-description", "evaluation-criteria"]
        assert status.total_chunks > 0

    def test_status_before_loading(self):
        status = DocumentStore().status()
        assert status.initialized is False
        assert status.document_count == 0
        assert status.total_chunks == 0


class TestSearch:
    """Tests for document search."""

    def test_results_respect_limit_and_relevance(self):
        hits = _loaded_store().search("backend skills", 2)
        assert 0 < len(hits) <= 2
        assert all(hit.relevance > 0 for hit in hits)
        relevances = [hit.relevance for hit in hits]
        assert relevances == sorted(relevances, reverse=True)

    def test_relevance_is_matching_chunk_count(self):
        hits = _loaded_store().search("backend", 5)
        for hit in hits:
            assert hit.relevance == len(hit.chunks)
            assert hit.relevance <= 3

    def test_limit_one(self):
        assert len(_loaded_store().search("evaluation", 1)) == 1

    def test_no_matches(self):
        assert _loaded_store().search("zzzqqq", 5) == []

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_rejected(self, query):
        with pytest.raises(MissingQueryError):
            _loaded_store().search(query)

    def test_stable_order_on_equal_relevance(self):
        store = DocumentStore(top_k=3)
        store.load("first", LONG_A, "a")
        store.load("second", LONG_A.replace("Backend", "Other"), "b")
        hits = store.search("postgresql")
        assert [hit.document_id for hit in hits] == ["first", "second"]

    def test_zero_top_k_is_respected(self):
        store = load_reference_documents(DocumentStore(top_k=0))
        assert store.search("backend skills") == []
        assert store.get_job_requirements("backend skills") == ""

    def test_default_top_k_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "retrieval_top_k", 1)
        store = load_reference_documents(DocumentStore())
        assert all(hit.relevance <= 1 for hit in store.search("backend skills"))

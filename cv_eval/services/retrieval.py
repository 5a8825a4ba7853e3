# =============================================================================
# Lexical Retrieval Engine — "RAG-lite" Chunk Ranking
# =============================================================================
#
# Ranks reference-document chunks against a query by token overlap, then
# post-processes the winning chunks into structured prompt context.
#
# SCORING (per chunk):
#   1. Case-fold and whitespace-split both chunk and query
#   2. For every (query token, chunk token) pair where one contains the
#      other: +2 if the query token is longer than 3 characters, else +1
#   3. +3 if the whole query appears verbatim (case-folded) in the chunk
#   Zero-score chunks are dropped; the rest are sorted by score descending.
#   Python's sort is stable, so ties keep their original chunk order.
#
# CONTEXT BUILDERS:
#   build_cv_context()      → job skills/experience bullets + CV rubric lines
#   build_project_context() → project rubric lines + core responsibilities
# Both go through the DocumentStore, which applies rank() per document.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cv_eval.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Queries and Section Headers
# ---------------------------------------------------------------------------

CV_JOB_QUERY = "technical skills experience backend requirements"
CV_RUBRIC_QUERY = "CV evaluation technical skills experience"
PROJECT_RUBRIC_QUERY = "project evaluation correctness code quality resilience"
PROJECT_JOB_QUERY = "LLM chaining RAG implementation error handling"

JOB_SUMMARY = (
    "Backend engineer role focusing on AI-powered systems, LLM integration, "
    "and scalable architecture"
)

CV_CRITERIA_HEADERS: dict[str, str] = {
    "technical_skills": "Technical Skills Match",
    "experience_level": "Experience Level",
    "achievements": "Relevant Achievements",
    "cultural_fit": "Cultural/Collaboration Fit",
}

PROJECT_CRITERIA_HEADERS: dict[str, str] = {
    "correctness": "Correctness - Prompt & Chaining",
    "code_quality": "Code Quality & Structure",
    "resilience": "Resilience & Error Handling",
    "documentation": "Documentation & Explanation",
    "creativity": "Creativity & Bonus Features",
}

DEFAULT_SCORING_DETAILS = "Standard evaluation criteria apply"
_BULLET_MARKERS = ("-", "•")
_SCORING_WINDOW = 10


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk paired with its lexical relevance score."""

    text: str
    score: int


@dataclass
class JobContext:
    skills: list[str] = field(default_factory=list)
    experience: list[str] = field(default_factory=list)
    summary: str = JOB_SUMMARY


@dataclass
class CVContext:
    """Retrieved context injected into the CV matching prompt."""

    job_context: JobContext
    guidelines: dict[str, str]

    @property
    def retrieved(self) -> bool:
        return bool(self.job_context.skills or self.job_context.experience)


@dataclass
class ProjectContext:
    """Retrieved context injected into the project scoring prompt."""

    scoring_criteria: dict[str, str]
    technical_requirements: list[str]

    @property
    def retrieved(self) -> bool:
        return bool(self.technical_requirements) or any(
            details != DEFAULT_SCORING_DETAILS
            for details in self.scoring_criteria.values()
        )


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def score_chunk(chunk: str, query: str) -> int:
    """Lexical overlap score of one chunk against a query."""
    chunk_lower = chunk.lower()
    query_lower = query.lower()
    chunk_tokens = chunk_lower.split()
    query_tokens = query_lower.split()

    score = 0
    for query_token in query_tokens:
        weight = 2 if len(query_token) > 3 else 1
        for chunk_token in chunk_tokens:
            if query_token in chunk_token or chunk_token in query_token:
                score += weight

    if query_lower and query_lower in chunk_lower:
        score += 3

    return score


def rank_scored(chunks: list[str], query: str, k: int = 3) -> list[ScoredChunk]:
    """Return the k best-scoring chunks with their scores, best first."""
    scored = [ScoredChunk(text=chunk, score=score_chunk(chunk, query)) for chunk in chunks]
    matching = [item for item in scored if item.score > 0]
    matching.sort(key=lambda item: item.score, reverse=True)
    return matching[:k]


def rank(chunks: list[str], query: str, k: int = 3) -> list[str]:
    """Return the text of the k best-scoring chunks, best first."""
    return [item.text for item in rank_scored(chunks, query, k)]


# ---------------------------------------------------------------------------
# Section Extraction
# ---------------------------------------------------------------------------


def extract_bullet_points(text: str, section_name: str) -> list[str]:
    """
    Collect the bullet lines that follow the first line mentioning
    `section_name`.

    Lines are compared after stripping indentation, so the section ends at
    the first non-blank, non-bullet line once at least one bullet was seen.
    """
    lines = text.split("\n")
    start = next(
        (i for i, line in enumerate(lines) if section_name in line),
        None,
    )
    if start is None:
        return []

    bullets: list[str] = []
    for line in lines[start + 1:]:
        stripped = line.strip()
        if stripped.startswith(_BULLET_MARKERS):
            bullets.append(stripped[1:].strip())
        elif stripped and bullets:
            break
    return bullets


def extract_scoring_details(rubric: str, criterion_name: str) -> str:
    """Join the `SCORE ...` and `Weight:` lines that describe a criterion."""
    lines = rubric.split("\n")
    start = next(
        (i for i, line in enumerate(lines) if criterion_name in line),
        None,
    )
    if start is None:
        return DEFAULT_SCORING_DETAILS

    details = [
        line.strip()
        for line in lines[start:start + _SCORING_WINDOW]
        if line.strip().startswith("SCORE") or "Weight:" in line
    ]
    return " ".join(details)


# ---------------------------------------------------------------------------
# Context Builders
# ---------------------------------------------------------------------------


def build_cv_context(store: DocumentStore) -> CVContext:
    """Retrieve job requirements and CV rubric context for stage 3."""
    requirements = store.get_job_requirements(CV_JOB_QUERY)
    rubric = store.get_scoring_rubric(CV_RUBRIC_QUERY)

    context = CVContext(
        job_context=JobContext(
            skills=extract_bullet_points(requirements, "Required Technical Skills"),
            experience=extract_bullet_points(requirements, "Experience Requirements"),
        ),
        guidelines={
            key: extract_scoring_details(rubric, header)
            for key, header in CV_CRITERIA_HEADERS.items()
        },
    )
    logger.debug(
        "CV context: %d skill bullets, %d experience bullets",
        len(context.job_context.skills), len(context.job_context.experience),
    )
    return context


def build_project_context(store: DocumentStore) -> ProjectContext:
    """Retrieve project rubric and technical requirements for stage 5."""
    rubric = store.get_scoring_rubric(PROJECT_RUBRIC_QUERY)
    requirements = store.get_job_requirements(PROJECT_JOB_QUERY)

    context = ProjectContext(
        scoring_criteria={
            key: extract_scoring_details(rubric, header)
            for key, header in PROJECT_CRITERIA_HEADERS.items()
        },
        technical_requirements=extract_bullet_points(
            requirements, "Core Responsibilities",
        ),
    )
    logger.debug(
        "Project context: %d technical requirements",
        len(context.technical_requirements),
    )
    return context

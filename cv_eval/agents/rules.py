# =============================================================================
# Rule Tables — Keyword Heuristics Behind Every Fallback
# =============================================================================
#
# When the LLM is unavailable or answers in the wrong shape, each stage
# falls back to a deterministic, rule-based result. The rules live here as
# data so they can be read, tuned and tested without touching stage code.
#
# TABLES:
#   SKILL_KEYWORDS          — technical skills recognised in a CV
#   ACHIEVEMENT_KEYWORDS    — verbs/nouns that mark an achievement line
#   COLLABORATION_KEYWORDS  — communication and teamwork signals
#   EDUCATION_KEYWORDS      — lines that describe education
#   REQUIREMENT_AREAS       — job requirement areas and their evidence
#   PROJECT_CRITERIA_RULES  — per-criterion baseline + keyword bonuses
#   CV_SCORE_THRESHOLDS     — count → 1-5 score ladders for the CV match
#
# Matching is case-insensitive on word boundaries, so "ai" does not match
# "maintain" and "rest" does not match "interest".
# =============================================================================

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

KeywordTable = tuple[tuple[str, int], ...]


# ---------------------------------------------------------------------------
# CV Tables
# ---------------------------------------------------------------------------

SKILL_KEYWORDS: KeywordTable = (
    ("node.js", 1),
    ("nodejs", 1),
    ("javascript", 1),
    ("python", 1),
    ("express", 1),
    ("react", 1),
    ("postgresql", 1),
    ("mysql", 1),
    ("mongodb", 1),
    ("redis", 1),
    ("aws", 1),
    ("docker", 1),
    ("rest", 1),
    ("api", 1),
    ("microservices", 1),
    ("ai", 1),
    ("llm", 1),
)

ACHIEVEMENT_KEYWORDS: KeywordTable = (
    ("improved", 1),
    ("increased", 1),
    ("reduced", 1),
    ("optimized", 1),
    ("optimised", 1),
    ("launched", 1),
    ("delivered", 1),
    ("led", 1),
    ("built", 1),
    ("award", 1),
    ("awarded", 1),
    ("achieved", 1),
)

COLLABORATION_KEYWORDS: KeywordTable = (
    ("team", 1),
    ("teamwork", 1),
    ("collaborated", 1),
    ("collaboration", 1),
    ("mentored", 1),
    ("mentoring", 1),
    ("leadership", 1),
    ("communication", 1),
    ("presented", 1),
    ("documentation", 1),
    ("cross-functional", 1),
    ("stakeholders", 1),
)

EDUCATION_KEYWORDS: KeywordTable = (
    ("bachelor", 1),
    ("master", 1),
    ("degree", 1),
    ("university", 1),
    ("computer science", 1),
    ("bootcamp", 1),
)

DEFAULT_EXPERIENCE_YEARS = 2
DEFAULT_EDUCATION = "Technical background indicated"

REQUIREMENT_AREAS: dict[str, KeywordTable] = {
    "Backend development": (
        ("node.js", 1), ("nodejs", 1), ("express", 1), ("python", 1),
        ("django", 1), ("java", 1), ("golang", 1),
    ),
    "Database management": (
        ("postgresql", 1), ("mysql", 1), ("mongodb", 1), ("redis", 1),
        ("sql", 1),
    ),
    "API design": (
        ("rest", 1), ("api", 1), ("graphql", 1), ("microservices", 1),
    ),
    "Cloud infrastructure": (
        ("aws", 1), ("gcp", 1), ("azure", 1), ("docker", 1),
        ("kubernetes", 1),
    ),
    "AI/LLM integration": (
        ("ai", 1), ("llm", 1), ("openai", 1), ("rag", 1), ("prompt", 1),
        ("vector", 1), ("embeddings", 1),
    ),
}

# (minimum count, score) pairs, checked top-down; below every step → 1.
CV_SCORE_THRESHOLDS: dict[str, tuple[tuple[float, int], ...]] = {
    "technical_skills": ((6, 5), (4, 4), (2, 3), (1, 2)),
    "experience_level": ((5, 5), (3, 4), (2, 3), (1, 2)),
    "achievements": ((4, 5), (2, 4), (1, 3), (0, 2)),
    "cultural_fit": ((3, 5), (2, 4), (1, 3), (0, 2)),
}


# ---------------------------------------------------------------------------
# Project Tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CriterionRule:
    """Baseline score for a criterion and the keywords that raise it."""

    baseline: int
    keywords: KeywordTable
    reasoning: str


PROJECT_CRITERIA_RULES: dict[str, CriterionRule] = {
    "correctness": CriterionRule(
        baseline=3,
        keywords=(
            ("rag", 1), ("vector", 1), ("embedding", 1), ("embeddings", 1),
            ("prompt", 1), ("chaining", 1), ("llm", 1),
        ),
        reasoning="Basic implementation meets requirements",
    ),
    "code_quality": CriterionRule(
        baseline=3,
        keywords=(
            ("tests", 1), ("testing", 1), ("unit test", 1), ("modular", 1),
            ("typescript", 1), ("linting", 1),
        ),
        reasoning="Standard code organization",
    ),
    "resilience": CriterionRule(
        baseline=3,
        keywords=(
            ("retry", 1), ("retries", 1), ("backoff", 1), ("fallback", 1),
            ("timeout", 1), ("error handling", 1), ("circuit breaker", 1),
        ),
        reasoning="Basic error handling present",
    ),
    "documentation": CriterionRule(
        baseline=4,
        keywords=(
            ("readme", 1), ("setup instructions", 1), ("api documentation", 1),
            ("architecture", 1),
        ),
        reasoning="Good documentation provided",
    ),
    "creativity": CriterionRule(
        baseline=3,
        keywords=(
            ("dashboard", 1), ("caching", 1), ("streaming", 1),
            ("monitoring", 1), ("webhook", 1),
        ),
        reasoning="Standard approach with some enhancements",
    ),
}

MAX_SCORE = 5

_YEARS_PATTERN = re.compile(r"(\d+)\s*(?:years?|yrs?)", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)", re.IGNORECASE)


def contains_keyword(text: str, keyword: str) -> bool:
    return _keyword_pattern(keyword).search(text) is not None


def matched_keywords(text: str, table: KeywordTable) -> list[str]:
    """Keywords from `table` present in `text`, in table order."""
    return [keyword for keyword, _ in table if contains_keyword(text, keyword)]


def keyword_weight(text: str, table: KeywordTable) -> int:
    """Sum of the weights of every keyword from `table` present in `text`."""
    return sum(weight for keyword, weight in table if contains_keyword(text, keyword))


def estimate_experience_years(text: str) -> int:
    """Largest "N years" / "N yrs" mention, or the default when none."""
    years = [int(match) for match in _YEARS_PATTERN.findall(text)]
    return max(years) if years else DEFAULT_EXPERIENCE_YEARS


def lines_with_keywords(text: str, table: KeywordTable, limit: int = 5) -> list[str]:
    """Non-empty lines mentioning any keyword, bullet markers removed."""
    found: list[str] = []
    for line in text.splitlines():
        cleaned = line.strip().lstrip("-•*").strip()
        if cleaned and keyword_weight(cleaned, table) > 0:
            found.append(cleaned)
            if len(found) >= limit:
                break
    return found


def score_from_thresholds(value: float, thresholds: tuple[tuple[float, int], ...]) -> int:
    for minimum, score in thresholds:
        if value >= minimum:
            return score
    return 1


def matched_requirement_areas(text: str) -> list[str]:
    """Requirement areas with at least one piece of evidence in `text`."""
    return [
        area for area, table in REQUIREMENT_AREAS.items()
        if keyword_weight(text, table) > 0
    ]


def score_project_criterion(text: str, rule: CriterionRule) -> tuple[int, list[str]]:
    """Baseline plus matched keyword weights, clamped to the 1-5 scale."""
    hits = matched_keywords(text, rule.keywords)
    bonus = keyword_weight(text, rule.keywords)
    return min(rule.baseline + bonus, MAX_SCORE), hits

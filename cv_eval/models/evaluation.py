# =============================================================================
# Evaluation Models — Stage Results and Final Report
# =============================================================================
#
# Pydantic V2 models for everything the pipeline produces. They double as
# the parsers for LLM output: a stage validates the model's JSON against
# these schemas, and a ValidationError means a malformed response (which
# routes to the stage fallback, never to job failure).
#
# Weighted scores are computed properties, never trusted from the LLM:
#   MatchResult.score          = weighted average (1-5) × 20   → 0..100
#   ProjectScore.overall_score = weighted average, 1 decimal   → 1.0..5.0
# Decimal arithmetic keeps x.x5 averages rounding half-up consistently.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field, computed_field

# ---------------------------------------------------------------------------
# Criterion Weights
# ---------------------------------------------------------------------------

CV_WEIGHTS: dict[str, Decimal] = {
    "technical_skills": Decimal("0.40"),
    "experience_level": Decimal("0.25"),
    "achievements": Decimal("0.20"),
    "cultural_fit": Decimal("0.15"),
}

PROJECT_WEIGHTS: dict[str, Decimal] = {
    "correctness": Decimal("0.30"),
    "code_quality": Decimal("0.25"),
    "resilience": Decimal("0.20"),
    "documentation": Decimal("0.15"),
    "creativity": Decimal("0.10"),
}


class CriterionScore(BaseModel):
    """A 1-5 score for one rubric criterion, with the reason behind it."""

    score: int = Field(ge=1, le=5)
    reasoning: str = ""


def _weighted_average(breakdown: BaseModel, weights: dict[str, Decimal]) -> Decimal:
    return sum(
        (Decimal(getattr(breakdown, name).score) * weight for name, weight in weights.items()),
        Decimal(0),
    )


# ---------------------------------------------------------------------------
# Stage 2: Structured CV
# ---------------------------------------------------------------------------


class ProjectSummary(BaseModel):
    name: str
    description: str = ""
    technologies: list[str] = Field(default_factory=list)


class CVStructured(BaseModel):
    """Structured view of a CV, produced by the structuring stage."""

    skills: list[str] = Field(default_factory=list)
    experience_years: float = Field(default=0, ge=0)
    projects: list[ProjectSummary] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    education: str = ""
    communication_indicators: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Stage 3: CV Match
# ---------------------------------------------------------------------------


class CVBreakdown(BaseModel):
    technical_skills: CriterionScore
    experience_level: CriterionScore
    achievements: CriterionScore
    cultural_fit: CriterionScore


class MatchResult(BaseModel):
    """How well a structured CV matches the job requirements."""

    breakdown: CVBreakdown
    rag_context_used: bool = False
    matched_requirements: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def score(self) -> float:
        """Weighted average of the breakdown scaled to 0-100."""
        return float(_weighted_average(self.breakdown, CV_WEIGHTS) * 20)

    def strengths(self) -> list[str]:
        return [name for name, item in self.breakdown if item.score >= 4]

    def gaps(self) -> list[str]:
        return [name for name, item in self.breakdown if item.score <= 2]


# ---------------------------------------------------------------------------
# Stage 5: Project Score
# ---------------------------------------------------------------------------


class ProjectBreakdown(BaseModel):
    correctness: CriterionScore
    code_quality: CriterionScore
    resilience: CriterionScore
    documentation: CriterionScore
    creativity: CriterionScore


class ProjectScore(BaseModel):
    """Rubric-based assessment of the project report."""

    breakdown: ProjectBreakdown
    rag_context_used: bool = False
    matched_criteria: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_score(self) -> float:
        """Weighted average of the breakdown, rounded half-up to one decimal."""
        average = _weighted_average(self.breakdown, PROJECT_WEIGHTS)
        return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Final Report
# ---------------------------------------------------------------------------


class DetailedScores(BaseModel):
    cv_breakdown: CVBreakdown
    project_breakdown: ProjectBreakdown


class RagFeatures(BaseModel):
    job_context_retrieved: bool
    project_context_retrieved: bool
    matched_requirements: list[str]
    matched_criteria: list[str]


class AIAnalysis(BaseModel):
    cv_structured: CVStructured
    processing_stages: list[str]
    rag_features: RagFeatures
    degraded_stages: list[str] = Field(
        default_factory=list,
        description="Stages whose output came from a rule-based fallback",
    )


class ResultMetadata(BaseModel):
    evaluation_id: str
    upload_id: str
    files: dict[str, str]
    processing_time: str


class EvaluationResult(BaseModel):
    """The complete evaluation attached to a completed job."""

    cv_match_rate: float = Field(ge=0, le=1)
    cv_feedback: str
    project_score: float = Field(ge=1, le=5)
    project_feedback: str
    overall_summary: str
    recommendation: str
    detailed_scores: DetailedScores
    ai_analysis: AIAnalysis
    metadata: ResultMetadata
    processed_at: datetime

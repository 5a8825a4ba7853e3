# =============================================================================
# Project Analyst — Rubric Scoring, Feedback and Final Summary
# =============================================================================
#
# Pipeline stages 5-6:
#   evaluate_project          — project text + rubric context → ProjectScore
#   generate_project_feedback — ProjectScore → 2-3 sentences
#   generate_overall_summary  — both evaluations → 3-4 sentence summary
#   recommendation            — deterministic hiring label from the scores
#
# The recommendation is computed here rather than asked of the model, so
# the same scores always produce the same label whichever provider (or
# fallback) wrote the prose.
# =============================================================================

from __future__ import annotations

import logging

from cv_eval.agents import rules
from cv_eval.agents.parsing import parse_model, parse_text
from cv_eval.config import settings
from cv_eval.models.evaluation import (
    CriterionScore,
    MatchResult,
    ProjectBreakdown,
    ProjectScore,
)
from cv_eval.services.resilience import CallResult, ResilientLLM
from cv_eval.services.retrieval import ProjectContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

PROJECT_PROMPT = """\
You are a senior software architect evaluating a technical project.

PROJECT DESCRIPTION:
\"\"\"
{project_text}
\"\"\"

TECHNICAL REQUIREMENTS:
{requirements}

EVALUATION CRITERIA:
- Correctness (30%): LLM integration, prompt design, chaining
- Code Quality (25%): Structure, testing, maintainability
- Resilience (20%): Error handling, retry mechanisms
- Documentation (15%): Setup instructions, explanations
- Creativity (10%): Additional features, innovation

RUBRIC DETAILS:
{criteria}

Rate each on 1-5 scale and return ONLY this JSON:
{{
  "breakdown": {{
    "correctness": {{"score": 1-5, "reasoning": "LLM implementation assessment"}},
    "code_quality": {{"score": 1-5, "reasoning": "code structure analysis"}},
    "resilience": {{"score": 1-5, "reasoning": "error handling evaluation"}},
    "documentation": {{"score": 1-5, "reasoning": "documentation quality"}},
    "creativity": {{"score": 1-5, "reasoning": "innovation assessment"}}
  }},
  "matched_criteria": ["criteria that were well implemented"]
}}"""

PROJECT_FEEDBACK_PROMPT = """\
Provide technical feedback for this project submission:

PROJECT SCORES:
- Correctness: {b.correctness.score}/5
- Code Quality: {b.code_quality.score}/5
- Resilience: {b.resilience.score}/5
- Documentation: {b.documentation.score}/5
- Creativity: {b.creativity.score}/5
Overall: {overall}/5

Write 2-3 sentences focusing on:
1. What was implemented well
2. Key areas for improvement
3. Actionable next steps for production readiness

Return only the feedback text."""

SUMMARY_PROMPT = """\
As hiring manager, provide final candidate assessment:

EVALUATION RESULTS:
- CV Match: {cv_score:.0f}%
- CV Feedback: {cv_feedback}
- Project Score: {project_score}/5
- Project Feedback: {project_feedback}
- Recommendation: {recommendation}

Write 3-4 sentences including:
1. Overall fit assessment for backend + AI role
2. Key strengths demonstrated
3. Main concerns or development needs
4. The hiring recommendation above

Be specific about technical capabilities and growth potential."""

PROJECT_FEEDBACK_TEMPLATE = (
    "Project demonstrates {score}/5 implementation quality. Good "
    "documentation and structure. Focus on enhancing error handling and "
    "testing coverage for production readiness."
)

SUMMARY_TEMPLATE = (
    "Candidate shows {cv_score:.0f}% CV alignment and {project_score}/5 "
    "project execution. Solid technical foundation with growth potential. "
    "Overall recommendation: {recommendation}."
)

# (minimum CV score, minimum project score, label), checked top-down.
RECOMMENDATION_LADDER: tuple[tuple[float, float, str], ...] = (
    (80, 4.0, "highly recommended"),
    (70, 3.5, "recommended"),
    (60, 3.0, "needs discussion"),
)
DEFAULT_RECOMMENDATION = "needs further development"


def recommendation(cv_score: float, project_score: float) -> str:
    """Hiring label for a CV match score (0-100) and project score (1-5)."""
    for min_cv, min_project, label in RECOMMENDATION_LADDER:
        if cv_score >= min_cv and project_score >= min_project:
            return label
    return DEFAULT_RECOMMENDATION


# ---------------------------------------------------------------------------
# Stage 5: Project Score
# ---------------------------------------------------------------------------


def fallback_project_score(project_text: str, rag_context_used: bool = False) -> ProjectScore:
    """Baseline-plus-keywords project score used when the model is unavailable."""
    scores: dict[str, CriterionScore] = {}
    matched: list[str] = []

    for criterion, rule in rules.PROJECT_CRITERIA_RULES.items():
        score, hits = rules.score_project_criterion(project_text, rule)
        reasoning = rule.reasoning
        if hits:
            matched.append(criterion)
            reasoning = f"{reasoning}; evidence: {', '.join(hits)}"
        scores[criterion] = CriterionScore(score=score, reasoning=reasoning)

    return ProjectScore(
        breakdown=ProjectBreakdown(**scores),
        rag_context_used=rag_context_used,
        matched_criteria=matched,
    )


async def evaluate_project(
    llm: ResilientLLM,
    project_text: str,
    context: ProjectContext,
) -> CallResult[ProjectScore]:
    prompt = PROJECT_PROMPT.format(
        project_text=project_text[: settings.project_prompt_char_limit],
        requirements="\n".join(f"- {item}" for item in context.technical_requirements)
        or "- Backend + AI integration",
        criteria="\n".join(
            f"- {name}: {details}" for name, details in context.scoring_criteria.items()
        ),
    )

    def parse(text: str) -> ProjectScore:
        score = parse_model(text, ProjectScore)
        return score.model_copy(update={"rag_context_used": context.retrieved})

    result = await llm.invoke(
        prompt,
        fallback=lambda: fallback_project_score(
            project_text, rag_context_used=context.retrieved,
        ),
        parse=parse,
        label="score_project",
        temperature=0.3,
        max_tokens=1200,
    )
    logger.info("Project score: %.1f/5", result.value.overall_score)
    return result


# ---------------------------------------------------------------------------
# Stage 6: Feedback and Summary
# ---------------------------------------------------------------------------


async def generate_project_feedback(
    llm: ResilientLLM,
    project: ProjectScore,
) -> CallResult[str]:
    prompt = PROJECT_FEEDBACK_PROMPT.format(
        b=project.breakdown, overall=project.overall_score,
    )
    return await llm.invoke(
        prompt,
        fallback=lambda: PROJECT_FEEDBACK_TEMPLATE.format(score=project.overall_score),
        parse=parse_text,
        label="project_feedback",
        temperature=0.4,
        max_tokens=250,
    )


async def generate_overall_summary(
    llm: ResilientLLM,
    match: MatchResult,
    cv_feedback: str,
    project: ProjectScore,
    project_feedback: str,
) -> CallResult[str]:
    label = recommendation(match.score, project.overall_score)
    prompt = SUMMARY_PROMPT.format(
        cv_score=match.score,
        cv_feedback=cv_feedback,
        project_score=project.overall_score,
        project_feedback=project_feedback,
        recommendation=label,
    )
    return await llm.invoke(
        prompt,
        fallback=lambda: SUMMARY_TEMPLATE.format(
            cv_score=match.score,
            project_score=project.overall_score,
            recommendation=label,
        ),
        parse=parse_text,
        label="summarise",
        temperature=0.4,
        max_tokens=300,
    )

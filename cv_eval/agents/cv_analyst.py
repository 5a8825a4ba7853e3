# =============================================================================
# CV Analyst — Structuring, Job Matching and Feedback
# =============================================================================
#
# Pipeline stages 2-4:
#   structure_cv         — CV text → CVStructured (JSON)
#   evaluate_cv_match    — CVStructured + retrieved job context → MatchResult
#   generate_cv_feedback — MatchResult → 2-3 sentences of feedback
#
# Every stage calls the model through ResilientLLM with a stage-specific
# prompt and a rule-based fallback from cv_eval.agents.rules. The returned
# CallResult tells the orchestrator whether the fallback was used.
#
# The weighted CV score is never taken from the model: MatchResult
# recomputes it from the per-criterion breakdown.
# =============================================================================

from __future__ import annotations

import json
import logging

from cv_eval.agents import rules
from cv_eval.agents.parsing import parse_model, parse_text
from cv_eval.config import settings
from cv_eval.models.evaluation import (
    CriterionScore,
    CVBreakdown,
    CVStructured,
    MatchResult,
    ProjectSummary,
)
from cv_eval.services.resilience import CallResult, ResilientLLM
from cv_eval.services.retrieval import CVContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

STRUCTURE_PROMPT = """\
You are an expert HR analyst. Extract structured information from this CV \
text and return ONLY valid JSON.

CV Text:
\"\"\"
{cv_text}
\"\"\"

Extract and return ONLY this JSON structure (no other text):
{{
  "skills": ["list of technical skills found"],
  "experience_years": number,
  "projects": [{{"name": "project name", "description": "brief description", \
"technologies": ["tech1", "tech2"]}}],
  "achievements": ["quantifiable achievements found"],
  "education": "education background",
  "communication_indicators": ["teamwork, leadership, communication skills mentioned"]
}}

Focus on technical skills, years of experience, project details, and \
measurable achievements."""

MATCH_PROMPT = """\
You are a senior technical recruiter evaluating a candidate for a Backend \
Engineer position.

CANDIDATE PROFILE:
{profile}

JOB REQUIREMENTS:
{summary}

Required Skills: {skills}
Experience Requirements: {experience}

SCORING GUIDELINES:
{guidelines}

Evaluate on 1-5 scale with weights:
- Technical Skills (40%): Backend, databases, APIs, cloud, AI/LLM
- Experience Level (25%): Years and complexity
- Achievements (20%): Impact and measurability
- Cultural Fit (15%): Communication and collaboration

Return ONLY this JSON:
{{
  "breakdown": {{
    "technical_skills": {{"score": 1-5, "reasoning": "specific assessment"}},
    "experience_level": {{"score": 1-5, "reasoning": "experience evaluation"}},
    "achievements": {{"score": 1-5, "reasoning": "achievement analysis"}},
    "cultural_fit": {{"score": 1-5, "reasoning": "collaboration assessment"}}
  }},
  "matched_requirements": ["specific requirements met"]
}}"""

FEEDBACK_PROMPT = """\
You are providing professional feedback to a job candidate.

CANDIDATE: {skills} with {years:g} years experience
EVALUATION SCORE: {score:.0f}%
STRENGTHS: {strengths}
GAPS: {gaps}

Write 2-3 sentences of professional, constructive feedback:
1. Acknowledge main strengths for this backend role
2. Identify key development areas
3. Keep encouraging but honest tone

Return only the feedback text, no formatting."""

CV_FEEDBACK_TEMPLATE = (
    "Solid technical background with {score:.0f}% alignment to role "
    "requirements. Good foundation for backend development. Consider "
    "developing additional AI/LLM integration skills."
)


# ---------------------------------------------------------------------------
# Stage 2: Structure CV
# ---------------------------------------------------------------------------


def fallback_structure(cv_text: str) -> CVStructured:
    """Keyword-based CV structuring used when the model is unavailable."""
    skills = rules.matched_keywords(cv_text, rules.SKILL_KEYWORDS)
    education = rules.lines_with_keywords(cv_text, rules.EDUCATION_KEYWORDS, limit=1)

    return CVStructured(
        skills=skills,
        experience_years=rules.estimate_experience_years(cv_text),
        projects=[
            ProjectSummary(
                name="Project Experience",
                description="Various projects mentioned",
                technologies=skills[:3],
            ),
        ] if skills else [],
        achievements=rules.lines_with_keywords(cv_text, rules.ACHIEVEMENT_KEYWORDS),
        education=education[0] if education else rules.DEFAULT_EDUCATION,
        communication_indicators=rules.matched_keywords(
            cv_text, rules.COLLABORATION_KEYWORDS,
        ),
    )


async def structure_cv(llm: ResilientLLM, cv_text: str) -> CallResult[CVStructured]:
    prompt = STRUCTURE_PROMPT.format(cv_text=cv_text[: settings.cv_prompt_char_limit])
    result = await llm.invoke(
        prompt,
        fallback=lambda: fallback_structure(cv_text),
        parse=lambda text: parse_model(text, CVStructured),
        label="structure_cv",
        temperature=0.2,
        max_tokens=800,
    )
    logger.info(
        "CV structured: %d skills, %g years experience%s",
        len(result.value.skills), result.value.experience_years,
        " (fallback)" if result.degraded else "",
    )
    return result


# ---------------------------------------------------------------------------
# Stage 3: CV Match
# ---------------------------------------------------------------------------


def _profile_text(cv: CVStructured) -> str:
    technologies = [tech for project in cv.projects for tech in project.technologies]
    return ", ".join(cv.skills + technologies)


def fallback_match(cv: CVStructured, rag_context_used: bool = False) -> MatchResult:
    """Threshold-based CV match used when the model is unavailable."""
    profile = _profile_text(cv)
    skill_count = rules.keyword_weight(profile, rules.SKILL_KEYWORDS)
    thresholds = rules.CV_SCORE_THRESHOLDS

    breakdown = CVBreakdown(
        technical_skills=CriterionScore(
            score=rules.score_from_thresholds(skill_count, thresholds["technical_skills"]),
            reasoning=f"{skill_count} recognised backend/AI skills",
        ),
        experience_level=CriterionScore(
            score=rules.score_from_thresholds(cv.experience_years, thresholds["experience_level"]),
            reasoning=f"{cv.experience_years:g} years of experience",
        ),
        achievements=CriterionScore(
            score=rules.score_from_thresholds(len(cv.achievements), thresholds["achievements"]),
            reasoning=f"{len(cv.achievements)} achievements noted",
        ),
        cultural_fit=CriterionScore(
            score=rules.score_from_thresholds(
                len(cv.communication_indicators), thresholds["cultural_fit"],
            ),
            reasoning=f"{len(cv.communication_indicators)} collaboration indicators",
        ),
    )
    return MatchResult(
        breakdown=breakdown,
        rag_context_used=rag_context_used,
        matched_requirements=rules.matched_requirement_areas(profile),
    )


async def evaluate_cv_match(
    llm: ResilientLLM,
    cv: CVStructured,
    context: CVContext,
) -> CallResult[MatchResult]:
    prompt = MATCH_PROMPT.format(
        profile=json.dumps(cv.model_dump(), indent=2),
        summary=context.job_context.summary,
        skills=", ".join(context.job_context.skills),
        experience=", ".join(context.job_context.experience),
        guidelines="\n".join(
            f"- {name}: {details}" for name, details in context.guidelines.items()
        ),
    )

    def parse(text: str) -> MatchResult:
        match = parse_model(text, MatchResult)
        return match.model_copy(update={"rag_context_used": context.retrieved})

    result = await llm.invoke(
        prompt,
        fallback=lambda: fallback_match(cv, rag_context_used=context.retrieved),
        parse=parse,
        label="match_cv",
        temperature=0.3,
        max_tokens=1000,
    )
    logger.info("CV match score: %.0f%%", result.value.score)
    return result


# ---------------------------------------------------------------------------
# Stage 4: CV Feedback
# ---------------------------------------------------------------------------


async def generate_cv_feedback(
    llm: ResilientLLM,
    cv: CVStructured,
    match: MatchResult,
) -> CallResult[str]:
    prompt = FEEDBACK_PROMPT.format(
        skills=", ".join(cv.skills) or "no listed skills",
        years=cv.experience_years,
        score=match.score,
        strengths=", ".join(match.strengths()) or "none identified",
        gaps=", ".join(match.gaps()) or "none identified",
    )
    return await llm.invoke(
        prompt,
        fallback=lambda: CV_FEEDBACK_TEMPLATE.format(score=match.score),
        parse=parse_text,
        label="cv_feedback",
        temperature=0.4,
        max_tokens=200,
    )

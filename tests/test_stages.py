# =============================================================================
# Unit Tests — Evaluation Stages
# =============================================================================
#
# Each stage is driven through a real ResilientLLM around a mock provider,
# so both the model path (Ok) and the fallback path (Degraded) are covered
# without API keys.
# =============================================================================

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from cv_eval.agents import cv_analyst, project_analyst
from cv_eval.models.evaluation import CVStructured
from cv_eval.services.document_store import DocumentStore
from cv_eval.services.llm import LLMResponse
from cv_eval.services.reference_docs import load_reference_documents
from cv_eval.services.resilience import ResilientLLM, RetryPolicy
from cv_eval.services.retrieval import build_cv_context, build_project_context

CV_BREAKDOWN = {
    "technical_skills": {"score": 5, "reasoning": "Strong backend stack"},
    "experience_level": {"score": 4, "reasoning": "4 years"},
    "achievements": {"score": 3, "reasoning": "Some impact"},
    "cultural_fit": {"score": 4, "reasoning": "Team player"},
}

PROJECT_BREAKDOWN = {
    "correctness": {"score": 4, "reasoning": "Good chaining"},
    "code_quality": {"score": 4, "reasoning": "Clean"},
    "resilience": {"score": 5, "reasoning": "Retries everywhere"},
    "documentation": {"score": 3, "reasoning": "Adequate"},
    "creativity": {"score": 2, "reasoning": "Minimal extras"},
}


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _llm_returning(content: str) -> tuple[ResilientLLM, AsyncMock]:
    provider = AsyncMock()
    provider.complete = AsyncMock(return_value=LLMResponse(
        content=content, model="test-model", input_tokens=1, output_tokens=1,
    ))
    return ResilientLLM(provider, policy=RetryPolicy(), sleep=AsyncMock()), provider


def _llm_failing() -> ResilientLLM:
    provider = AsyncMock()
    provider.complete = AsyncMock(side_effect=ConnectionError("unreachable"))
    return ResilientLLM(provider, policy=RetryPolicy(), sleep=AsyncMock())


@pytest.fixture
def store() -> DocumentStore:
    return load_reference_documents(DocumentStore(top_k=3))


# ---------------------------------------------------------------------------
# Test: Stage 2 — Structure CV
# ---------------------------------------------------------------------------


class TestStructureCV:

    def test_model_answer_parsed(self):
        llm, provider = _llm_returning(json.dumps({
            "skills": ["Python", "FastAPI"],
            "experience_years": 4,
            "projects": [{"name": "API", "technologies": ["Python"]}],
            "education": "BSc",
        }))

        result = _run(cv_analyst.structure_cv(llm, "CV text"))

        assert not result.degraded
        assert result.value.skills == ["Python", "FastAPI"]
        assert result.value.projects[0].name == "API"
        kwargs = provider.complete.await_args.kwargs
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 800

    def test_cv_text_truncated_in_prompt(self):
        llm, provider = _llm_returning('{"skills": []}')
        _run(cv_analyst.structure_cv(llm, "A" * 5000 + "<<CV-END>>"))
        prompt = provider.complete.await_args.kwargs["messages"][0]["content"]
        assert "<<CV-END>>" not in prompt
        assert "A" * 3000 in prompt

    def test_fenced_json_accepted(self):
        llm, _ = _llm_returning('```json\n{"skills": ["Go"], "experience_years": 1}\n```')
        result = _run(cv_analyst.structure_cv(llm, "CV text"))
        assert not result.degraded
        assert result.value.skills == ["Go"]

    def test_malformed_answer_falls_back(self):
        llm, provider = _llm_returning("Sure! Here are the skills: Python")
        result = _run(cv_analyst.structure_cv(llm, "Python developer, 6 years"))

        assert result.degraded
        assert result.value.skills == ["python"]
        assert result.value.experience_years == 6
        assert provider.complete.await_count == 1

    def test_all_attempts_fail_falls_back(self):
        result = _run(cv_analyst.structure_cv(_llm_failing(), "Docker and AWS, 3 years"))
        assert result.degraded
        assert len(result.attempts) == 3
        assert result.value.skills == ["aws", "docker"]


# ---------------------------------------------------------------------------
# Test: Stage 3 — CV Match
# ---------------------------------------------------------------------------


class TestEvaluateCVMatch:

    def test_score_recomputed_from_breakdown(self, store):
        llm, _ = _llm_returning(json.dumps({
            "breakdown": CV_BREAKDOWN,
            "score": 99,
            "matched_requirements": ["Node.js backend"],
        }))
        context = build_cv_context(store)

        result = _run(cv_analyst.evaluate_cv_match(llm, CVStructured(), context))

        assert not result.degraded
        # (0.40*5 + 0.25*4 + 0.20*3 + 0.15*4) * 20
        assert result.value.score == pytest.approx(84.0)
        assert result.value.matched_requirements == ["Node.js backend"]
        assert result.value.rag_context_used == context.retrieved

    def test_prompt_includes_retrieved_context(self, store):
        llm, provider = _llm_returning(json.dumps({"breakdown": CV_BREAKDOWN}))
        context = build_cv_context(store)

        _run(cv_analyst.evaluate_cv_match(llm, CVStructured(skills=["Go"]), context))

        prompt = provider.complete.await_args.kwargs["messages"][0]["content"]
        assert context.job_context.summary in prompt
        assert '"Go"' in prompt

    def test_out_of_range_score_falls_back(self, store):
        breakdown = dict(CV_BREAKDOWN, technical_skills={"score": 9, "reasoning": ""})
        llm, _ = _llm_returning(json.dumps({"breakdown": breakdown}))
        cv = CVStructured(skills=["python", "aws"], experience_years=3)

        result = _run(cv_analyst.evaluate_cv_match(llm, cv, build_cv_context(store)))

        assert result.degraded
        assert result.value.breakdown.technical_skills.score == 3
        assert result.value.breakdown.experience_level.score == 4


# ---------------------------------------------------------------------------
# Test: Stage 4 — CV Feedback
# ---------------------------------------------------------------------------


class TestGenerateCVFeedback:

    def test_model_feedback_trimmed(self):
        llm, provider = _llm_returning("  Strong backend profile.  ")
        match = cv_analyst.fallback_match(CVStructured(skills=["python"]))

        result = _run(cv_analyst.generate_cv_feedback(llm, CVStructured(), match))

        assert result.value == "Strong backend profile."
        kwargs = provider.complete.await_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"]) == (0.4, 200)

    def test_fallback_template(self):
        match = cv_analyst.fallback_match(CVStructured(experience_years=5))
        result = _run(cv_analyst.generate_cv_feedback(_llm_failing(), CVStructured(), match))

        assert result.degraded
        assert result.value.startswith(f"Solid technical background with {match.score:.0f}%")


# ---------------------------------------------------------------------------
# Test: Stages 5-6 — Project
# ---------------------------------------------------------------------------


class TestEvaluateProject:

    def test_overall_recomputed_and_rounded(self, store):
        llm, _ = _llm_returning(json.dumps({
            "breakdown": PROJECT_BREAKDOWN,
            "overallScore": 1.0,
            "matched_criteria": ["resilience"],
        }))

        result = _run(project_analyst.evaluate_project(
            llm, "project text", build_project_context(store),
        ))

        assert not result.degraded
        # 0.30*4 + 0.25*4 + 0.20*5 + 0.15*3 + 0.10*2 = 3.85 → 3.9
        assert result.value.overall_score == 3.9
        assert result.value.matched_criteria == ["resilience"]

    def test_fallback_uses_project_keywords(self, store):
        result = _run(project_analyst.evaluate_project(
            _llm_failing(), "Retry with backoff around every RAG call",
            build_project_context(store),
        ))

        assert result.degraded
        assert "resilience" in result.value.matched_criteria
        assert 1.0 <= result.value.overall_score <= 5.0

    def test_project_text_truncated(self, store):
        llm, provider = _llm_returning(json.dumps({"breakdown": PROJECT_BREAKDOWN}))
        _run(project_analyst.evaluate_project(
            llm, "B" * 2500 + "<<PROJECT-END>>", build_project_context(store),
        ))
        prompt = provider.complete.await_args.kwargs["messages"][0]["content"]
        assert "<<PROJECT-END>>" not in prompt
        assert "B" * 2000 in prompt


class TestFeedbackAndSummary:

    def test_project_feedback_fallback(self):
        project = project_analyst.fallback_project_score("plain")
        result = _run(project_analyst.generate_project_feedback(_llm_failing(), project))
        assert result.degraded
        assert result.value.startswith("Project demonstrates 3.2/5 implementation quality.")

    def test_summary_fallback_includes_recommendation(self):
        match = cv_analyst.fallback_match(cv_analyst.fallback_structure(
            "Node.js, PostgreSQL, AWS, LLM. 5 years. Improved latency. Team lead.",
        ))
        project = project_analyst.fallback_project_score("retry and RAG")

        result = _run(project_analyst.generate_overall_summary(
            _llm_failing(), match, "cv feedback", project, "project feedback",
        ))

        assert result.degraded
        label = project_analyst.recommendation(match.score, project.overall_score)
        assert result.value.endswith(f"Overall recommendation: {label}.")
        assert f"{match.score:.0f}% CV alignment" in result.value

    def test_summary_from_model(self):
        llm, provider = _llm_returning("Hire this candidate.")
        match = cv_analyst.fallback_match(CVStructured())
        project = project_analyst.fallback_project_score("plain")

        result = _run(project_analyst.generate_overall_summary(
            llm, match, "cv fb", project, "proj fb",
        ))

        assert result.value == "Hire this candidate."
        prompt = provider.complete.await_args.kwargs["messages"][0]["content"]
        assert "cv fb" in prompt and "proj fb" in prompt

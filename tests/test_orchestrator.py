# =============================================================================
# Integration Tests — Evaluation Orchestrator
# =============================================================================
#
# Runs the full LangGraph pipeline against real text files on disk, the
# real document store and in-memory repositories. The LLM is either absent
# (every stage degrades) or a mock provider, so no API key is needed.
# =============================================================================

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from cv_eval.agents.orchestrator import (
    MSG_COMPLETED,
    MSG_FAILED,
    PROCESSING_STAGES,
    EvaluationOrchestrator,
)
from cv_eval.exceptions import InvalidUploadIdError, NotFoundError
from cv_eval.services.document_store import DocumentStore
from cv_eval.services.jobs import JobStatus
from cv_eval.services.llm import LLMResponse
from cv_eval.services.reference_docs import load_reference_documents
from cv_eval.services.repository import InMemoryRepository
from cv_eval.services.resilience import ResilientLLM, RetryPolicy
from cv_eval.services.uploads import Upload, store_file

CV_TEXT = """\
Jane Doe - Backend Engineer
5 years of experience shipping production services.
Skills: Node.js, PostgreSQL, AWS, LLM
- Improved API latency by 40%
- Led a team of 4 engineers
"""

PROJECT_TEXT = """\
CV evaluation service.
Implemented a RAG pipeline backed by a vector store.
All LLM calls use retry with exponential backoff.
"""


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class RecordingRepository(InMemoryRepository):
    """Job repository that remembers every status it was given."""

    def __init__(self) -> None:
        super().__init__()
        self.history: list[JobStatus] = []

    def set(self, record) -> None:
        self.history.append(record.status)
        super().set(record)


def _make_upload(tmp_path, cv_text: str = CV_TEXT, project_text: str = PROJECT_TEXT) -> Upload:
    return Upload(
        cv_file=store_file(cv_text.encode(), "cv.txt", "text/plain", upload_dir=str(tmp_path)),
        project_file=store_file(
            project_text.encode(), "project.txt", "text/plain", upload_dir=str(tmp_path),
        ),
    )


def _orchestrator(llm: ResilientLLM | None = None, **kwargs):
    uploads = InMemoryRepository()
    jobs = RecordingRepository()
    orchestrator = EvaluationOrchestrator(
        jobs=jobs,
        uploads=uploads,
        store=load_reference_documents(DocumentStore(top_k=3)),
        llm=llm or ResilientLLM(None, sleep=AsyncMock()),
        **kwargs,
    )
    return orchestrator, uploads, jobs


def _evaluate(orchestrator, upload_id):
    async def scenario():
        job_id = await orchestrator.submit(upload_id)
        initial = orchestrator.get_status(job_id)
        await orchestrator.join()
        return initial, orchestrator.get_status(job_id)

    return _run(scenario())


# ---------------------------------------------------------------------------
# Test: Submission
# ---------------------------------------------------------------------------


class TestSubmit:

    def test_unknown_upload_rejected_without_creating_job(self):
        orchestrator, _, jobs = _orchestrator()
        with pytest.raises(InvalidUploadIdError):
            _run(orchestrator.submit("no-such-upload"))
        assert len(jobs) == 0

    def test_missing_upload_id_rejected(self):
        orchestrator, _, _ = _orchestrator()
        with pytest.raises(InvalidUploadIdError):
            _run(orchestrator.submit(None))

    def test_unknown_job_not_found(self):
        orchestrator, _, _ = _orchestrator()
        with pytest.raises(NotFoundError):
            orchestrator.get_status("does-not-exist")

    def test_returns_before_pipeline_runs(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        initial, final = _evaluate(orchestrator, upload.id)

        assert initial.status in (JobStatus.QUEUED, JobStatus.PROCESSING)
        assert initial.upload_id == upload.id
        assert final.status is JobStatus.COMPLETED


# ---------------------------------------------------------------------------
# Test: Pipeline Without a Provider (All Fallbacks)
# ---------------------------------------------------------------------------


class TestPipelineFallbacks:

    def test_reference_scenario(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _, job = _evaluate(orchestrator, upload.id)

        assert job.status is JobStatus.COMPLETED
        assert job.message == MSG_COMPLETED
        result = job.result
        assert result.cv_match_rate >= 0.6
        assert result.project_score >= 3.0
        assert result.ai_analysis.rag_features.matched_requirements
        assert result.ai_analysis.rag_features.matched_criteria
        assert 0 <= result.cv_match_rate <= 1
        assert 1.0 <= result.project_score <= 5.0

    def test_every_stage_degraded(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _, job = _evaluate(orchestrator, upload.id)

        assert job.result.ai_analysis.degraded_stages == [
            "structure_cv", "match_cv", "cv_feedback", "score_project", "summarise",
        ]

    def test_result_metadata(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _, job = _evaluate(orchestrator, upload.id)

        metadata = job.result.metadata
        assert metadata.evaluation_id == job.id
        assert metadata.upload_id == upload.id
        assert metadata.files == {"cv": "cv.txt", "project": "project.txt"}
        assert metadata.processing_time.endswith("s")
        assert job.result.ai_analysis.processing_stages == PROCESSING_STAGES

    def test_status_moves_forward_only(self, tmp_path):
        orchestrator, uploads, jobs = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _evaluate(orchestrator, upload.id)

        order = [JobStatus.QUEUED, JobStatus.PROCESSING, JobStatus.COMPLETED]
        ranks = [order.index(status) for status in jobs.history]
        assert ranks == sorted(ranks)
        assert jobs.history[0] is JobStatus.QUEUED
        assert jobs.history[-1] is JobStatus.COMPLETED
        # Start + one checkpoint per stage + compile
        assert jobs.history.count(JobStatus.PROCESSING) >= 7

    def test_concurrent_jobs(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload_ids = []
        for _ in range(3):
            upload = _make_upload(tmp_path)
            uploads.set(upload)
            upload_ids.append(upload.id)

        async def scenario():
            job_ids = [await orchestrator.submit(upload_id) for upload_id in upload_ids]
            await orchestrator.join()
            return [orchestrator.get_status(job_id) for job_id in job_ids]

        jobs = _run(scenario())

        assert {job.status for job in jobs} == {JobStatus.COMPLETED}
        assert orchestrator.in_flight == 0


# ---------------------------------------------------------------------------
# Test: Pipeline With a Provider
# ---------------------------------------------------------------------------


def _scripted_provider(fail_structuring: bool = False) -> AsyncMock:
    """Mock provider answering each stage by recognising its prompt."""

    async def complete(messages, system=None, temperature=None, max_tokens=None):
        prompt = messages[0]["content"]
        if "Extract structured information" in prompt:
            if fail_structuring:
                raise TimeoutError("provider timed out")
            content = json.dumps({
                "skills": ["Node.js", "PostgreSQL", "AWS", "LLM"],
                "experience_years": 5,
                "achievements": ["Improved API latency by 40%"],
                "communication_indicators": ["Led a team"],
            })
        elif "senior technical recruiter" in prompt:
            content = json.dumps({
                "breakdown": {
                    "technical_skills": {"score": 5, "reasoning": "Full stack match"},
                    "experience_level": {"score": 5, "reasoning": "5 years"},
                    "achievements": {"score": 4, "reasoning": "Quantified"},
                    "cultural_fit": {"score": 4, "reasoning": "Leads a team"},
                },
                "matched_requirements": ["Backend development", "AI/LLM integration"],
            })
        elif "senior software architect" in prompt:
            content = json.dumps({
                "breakdown": {
                    "correctness": {"score": 4, "reasoning": "RAG works"},
                    "code_quality": {"score": 4, "reasoning": "Clean"},
                    "resilience": {"score": 5, "reasoning": "Retries"},
                    "documentation": {"score": 4, "reasoning": "Good"},
                    "creativity": {"score": 3, "reasoning": "Some extras"},
                },
                "matched_criteria": ["correctness", "resilience"],
            })
        else:
            content = "Model-written feedback."
        return LLMResponse(content=content, model="test-model", input_tokens=1, output_tokens=1)

    provider = AsyncMock()
    provider.complete = AsyncMock(side_effect=complete)
    return provider


class TestPipelineWithProvider:

    def test_model_results_used(self, tmp_path):
        llm = ResilientLLM(_scripted_provider(), policy=RetryPolicy(), sleep=AsyncMock())
        orchestrator, uploads, _ = _orchestrator(llm)
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _, job = _evaluate(orchestrator, upload.id)

        result = job.result
        assert job.status is JobStatus.COMPLETED
        assert result.ai_analysis.degraded_stages == []
        # (0.40*5 + 0.25*5 + 0.20*4 + 0.15*4) * 20 = 93 → 0.93
        assert result.cv_match_rate == pytest.approx(0.93)
        # 1.2 + 1.0 + 1.0 + 0.6 + 0.3 = 4.1
        assert result.project_score == 4.1
        assert result.recommendation == "highly recommended"
        assert result.cv_feedback == "Model-written feedback."
        assert result.overall_summary == "Model-written feedback."

    def test_structuring_exhausted_still_completes(self, tmp_path):
        sleep = AsyncMock()
        provider = _scripted_provider(fail_structuring=True)
        llm = ResilientLLM(provider, policy=RetryPolicy(), sleep=sleep)
        orchestrator, uploads, _ = _orchestrator(llm)
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _, job = _evaluate(orchestrator, upload.id)

        assert job.status is JobStatus.COMPLETED
        assert job.result.ai_analysis.degraded_stages == ["structure_cv"]
        assert job.result.ai_analysis.cv_structured.skills == [
            "node.js", "postgresql", "aws", "api", "llm",
        ]
        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0]


# ---------------------------------------------------------------------------
# Test: Job Failure
# ---------------------------------------------------------------------------


class TestPipelineFailure:

    def test_extraction_error_fails_job(self, tmp_path):
        def broken_extract(file):
            raise OSError("disk unavailable")

        orchestrator, uploads, _ = _orchestrator(extract=broken_extract)
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        _, job = _evaluate(orchestrator, upload.id)

        assert job.status is JobStatus.FAILED
        assert job.error == "disk unavailable"
        assert job.message == MSG_FAILED
        assert job.result is None
        assert job.failed_at is not None

    def test_fallback_error_fails_job(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)

        with patch(
            "cv_eval.agents.cv_analyst.fallback_structure",
            side_effect=ValueError("rule table broken"),
        ):
            _, job = _evaluate(orchestrator, upload.id)

        assert job.status is JobStatus.FAILED
        assert job.error == "rule table broken"

    def test_unreadable_file_still_evaluated(self, tmp_path):
        orchestrator, uploads, _ = _orchestrator()
        upload = _make_upload(tmp_path)
        uploads.set(upload)
        # File disappears between upload and evaluation
        (tmp_path / upload.cv_file.filename).unlink()

        _, job = _evaluate(orchestrator, upload.id)

        assert job.status is JobStatus.COMPLETED
        assert job.result.cv_match_rate <= 1

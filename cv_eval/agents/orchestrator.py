# =============================================================================
# Evaluation Orchestrator — Job Lifecycle and LangGraph Pipeline
# =============================================================================
#
# submit() creates a queued job and returns immediately; the evaluation
# itself runs in its own asyncio task through a linear LangGraph graph:
#
#   START ──▶ extract ──▶ structure_cv ──▶ match_cv ──▶ cv_feedback
#         ──▶ score_project ──▶ summarise ──▶ END
#
# Each node writes a progress message to the job (a checkpoint that
# GET /result/{id} can observe), calls its stage function, and returns a
# partial state update. Stages whose value came from a rule-based fallback
# append their name to `degraded_stages`.
#
# FAILURE MODEL:
#   provider errors, malformed model output → handled inside ResilientLLM,
#                                             the stage degrades
#   anything else raised inside a node      → StageFailureError, the job
#                                             is marked failed; partial
#                                             outputs are discarded
# There is no pipeline-level retry.
#
# The graph is compiled once per orchestrator; nodes are bound methods so
# they reach the injected repositories, document store and LLM wrapper
# without globals.
# =============================================================================

from __future__ import annotations

import asyncio
import functools
import logging
import operator
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Annotated

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from cv_eval.agents import cv_analyst, project_analyst
from cv_eval.exceptions import InvalidUploadIdError, NotFoundError, StageFailureError
from cv_eval.models.evaluation import (
    AIAnalysis,
    CVStructured,
    DetailedScores,
    EvaluationResult,
    MatchResult,
    ProjectScore,
    RagFeatures,
    ResultMetadata,
)
from cv_eval.services.document_store import DocumentStore
from cv_eval.services.extractor import extract_text
from cv_eval.services.jobs import EvaluationJob
from cv_eval.services.repository import Repository
from cv_eval.services.resilience import CallResult, ResilientLLM
from cv_eval.services.retrieval import (
    CVContext,
    ProjectContext,
    build_cv_context,
    build_project_context,
)
from cv_eval.services.uploads import StoredFile, Upload

logger = logging.getLogger(__name__)

PROCESSING_STAGES: list[str] = [
    "File content extraction",
    "CV information structuring",
    "RAG context retrieval for job matching",
    "CV evaluation with enhanced context",
    "CV feedback generation",
    "RAG context retrieval for project scoring",
    "Project evaluation with enhanced criteria",
    "Project feedback refinement",
    "Overall summary compilation",
]

MSG_STARTED = "Running AI analysis pipeline..."
MSG_COMPILING = "Compiling final evaluation results..."
MSG_COMPLETED = "AI evaluation completed successfully"
MSG_FAILED = "AI evaluation failed - please try again"


# ---------------------------------------------------------------------------
# Pipeline State Schema
# ---------------------------------------------------------------------------


class PipelineState(TypedDict, total=False):
    """
    State that flows through the evaluation graph.

    total=False so each node only returns the keys it produces.
    `degraded_stages` is concatenated across nodes instead of replaced.
    """

    # --- Input ---
    job_id: str
    upload: Upload

    # --- Stage outputs ---
    cv_text: str
    project_text: str
    cv_structured: CVStructured
    cv_context: CVContext
    match: MatchResult
    cv_feedback_text: str
    project_context: ProjectContext
    project: ProjectScore
    project_feedback: str
    summary: str

    degraded_stages: Annotated[list[str], operator.add]


def _stage(name: str, message: str):
    """
    Wrap a node: checkpoint the job message, then run the stage.

    Unexpected exceptions are re-raised as StageFailureError so the job
    records which stage broke.
    """

    def decorator(node):
        @functools.wraps(node)
        async def wrapper(self: EvaluationOrchestrator, state: PipelineState) -> dict:
            job_id = state["job_id"]
            self._checkpoint(job_id, message)
            logger.info("[%s] Stage %s started", job_id, name)
            try:
                return await node(self, state)
            except StageFailureError:
                raise
            except Exception as exc:
                raise StageFailureError(name, exc) from exc

        return wrapper

    return decorator


def _degraded(name: str, *results: CallResult) -> list[str]:
    return [name] if any(result.degraded for result in results) else []


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class EvaluationOrchestrator:
    """Creates evaluation jobs and runs each one in its own asyncio task."""

    def __init__(
        self,
        jobs: Repository[EvaluationJob],
        uploads: Repository[Upload],
        store: DocumentStore,
        llm: ResilientLLM,
        extract: Callable[[StoredFile], str] = extract_text,
    ) -> None:
        self._jobs = jobs
        self._uploads = uploads
        self._store = store
        self._llm = llm
        self._extract = extract
        # Strong references: the event loop only keeps weak ones.
        self._tasks: set[asyncio.Task] = set()
        self._graph = self._build_graph()

    # --- Public API ---

    async def submit(self, upload_id: str | None) -> str:
        """Queue an evaluation of `upload_id` and return the new job id."""
        if not upload_id or not self._uploads.has(upload_id):
            raise InvalidUploadIdError(upload_id)

        job = EvaluationJob(upload_id=upload_id)
        self._jobs.set(job)
        logger.info("[%s] Evaluation queued for upload %s", job.id, upload_id)

        task = asyncio.get_running_loop().create_task(
            self._run(job.id), name=f"evaluation-{job.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job.id

    def get_status(self, job_id: str) -> EvaluationJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError("Evaluation", job_id)
        return job

    async def join(self) -> None:
        """Wait for every in-flight evaluation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def llm_configured(self) -> bool:
        return self._llm.configured

    # --- Job execution ---

    def _update(self, job_id: str, change: Callable[[EvaluationJob], EvaluationJob]) -> None:
        self._jobs.set(change(self.get_status(job_id)))

    def _checkpoint(self, job_id: str, message: str) -> None:
        self._update(job_id, lambda job: job.progress(message))

    async def _run(self, job_id: str) -> None:
        started = time.monotonic()
        self._update(job_id, lambda job: job.start(MSG_STARTED))
        job = self.get_status(job_id)
        upload = self._uploads.get(job.upload_id)
        logger.info("[%s] Starting AI evaluation pipeline", job_id)

        try:
            if upload is None:
                raise StageFailureError("extract", NotFoundError("Upload", job.upload_id))
            state = await self._graph.ainvoke({
                "job_id": job_id,
                "upload": upload,
                "degraded_stages": [],
            })
            self._checkpoint(job_id, MSG_COMPILING)
            result = self._compile_result(job_id, upload, state, started)
        except StageFailureError as exc:
            logger.exception("[%s] AI evaluation failed in stage %s", job_id, exc.stage)
            self._update(job_id, lambda job: job.fail(str(exc), MSG_FAILED))
            return
        except Exception as exc:
            logger.exception("[%s] AI evaluation failed", job_id)
            error = str(exc) or exc.__class__.__name__
            self._update(job_id, lambda job: job.fail(error, MSG_FAILED))
            return

        self._update(job_id, lambda job: job.complete(result, MSG_COMPLETED))
        logger.info(
            "[%s] AI evaluation completed: cv_match_rate=%.2f project_score=%.1f "
            "recommendation=%s degraded=%s",
            job_id, result.cv_match_rate, result.project_score,
            result.recommendation, result.ai_analysis.degraded_stages or "none",
        )

    def _compile_result(
        self,
        job_id: str,
        upload: Upload,
        state: PipelineState,
        started: float,
    ) -> EvaluationResult:
        match: MatchResult = state["match"]
        project: ProjectScore = state["project"]

        return EvaluationResult(
            cv_match_rate=round(match.score / 100, 2),
            cv_feedback=state["cv_feedback_text"],
            project_score=project.overall_score,
            project_feedback=state["project_feedback"],
            overall_summary=state["summary"],
            recommendation=project_analyst.recommendation(match.score, project.overall_score),
            detailed_scores=DetailedScores(
                cv_breakdown=match.breakdown,
                project_breakdown=project.breakdown,
            ),
            ai_analysis=AIAnalysis(
                cv_structured=state["cv_structured"],
                processing_stages=list(PROCESSING_STAGES),
                rag_features=RagFeatures(
                    job_context_retrieved=match.rag_context_used,
                    project_context_retrieved=project.rag_context_used,
                    matched_requirements=match.matched_requirements,
                    matched_criteria=project.matched_criteria,
                ),
                degraded_stages=state.get("degraded_stages", []),
            ),
            metadata=ResultMetadata(
                evaluation_id=job_id,
                upload_id=upload.id,
                files={
                    "cv": upload.cv_file.original_name,
                    "project": upload.project_file.original_name,
                },
                processing_time=f"{time.monotonic() - started:.1f}s",
            ),
            processed_at=datetime.now(UTC),
        )

    # --- Graph nodes ---

    @_stage("extract", "Extracting text from uploaded files...")
    async def _extract_node(self, state: PipelineState) -> dict:
        upload = state["upload"]
        cv_text, project_text = await asyncio.gather(
            asyncio.to_thread(self._extract, upload.cv_file),
            asyncio.to_thread(self._extract, upload.project_file),
        )
        logger.info(
            "[%s] Extracted %d CV chars, %d project chars",
            state["job_id"], len(cv_text), len(project_text),
        )
        return {"cv_text": cv_text, "project_text": project_text}

    @_stage("structure_cv", "Analyzing CV with AI and retrieving job context...")
    async def _structure_cv_node(self, state: PipelineState) -> dict:
        result = await cv_analyst.structure_cv(self._llm, state["cv_text"])
        return {
            "cv_structured": result.value,
            "degraded_stages": _degraded("structure_cv", result),
        }

    @_stage("match_cv", "Matching CV against job requirements...")
    async def _match_cv_node(self, state: PipelineState) -> dict:
        context = build_cv_context(self._store)
        result = await cv_analyst.evaluate_cv_match(
            self._llm, state["cv_structured"], context,
        )
        return {
            "cv_context": context,
            "match": result.value,
            "degraded_stages": _degraded("match_cv", result),
        }

    @_stage("cv_feedback", "Generating CV feedback...")
    async def _cv_feedback_node(self, state: PipelineState) -> dict:
        result = await cv_analyst.generate_cv_feedback(
            self._llm, state["cv_structured"], state["match"],
        )
        return {
            "cv_feedback_text": result.value,
            "degraded_stages": _degraded("cv_feedback", result),
        }

    @_stage("score_project", "Evaluating project deliverable with enhanced scoring...")
    async def _score_project_node(self, state: PipelineState) -> dict:
        context = build_project_context(self._store)
        result = await project_analyst.evaluate_project(
            self._llm, state["project_text"], context,
        )
        return {
            "project_context": context,
            "project": result.value,
            "degraded_stages": _degraded("score_project", result),
        }

    @_stage("summarise", "Generating project feedback and overall summary...")
    async def _summarise_node(self, state: PipelineState) -> dict:
        feedback = await project_analyst.generate_project_feedback(
            self._llm, state["project"],
        )
        summary = await project_analyst.generate_overall_summary(
            self._llm,
            state["match"],
            state["cv_feedback_text"],
            state["project"],
            feedback.value,
        )
        return {
            "project_feedback": feedback.value,
            "summary": summary.value,
            "degraded_stages": _degraded("summarise", feedback, summary),
        }

    def _build_graph(self):
        builder = StateGraph(PipelineState)
        builder.add_node("extract", self._extract_node)
        builder.add_node("structure_cv", self._structure_cv_node)
        builder.add_node("match_cv", self._match_cv_node)
        builder.add_node("cv_feedback", self._cv_feedback_node)
        builder.add_node("score_project", self._score_project_node)
        builder.add_node("summarise", self._summarise_node)

        builder.add_edge(START, "extract")
        builder.add_edge("extract", "structure_cv")
        builder.add_edge("structure_cv", "match_cv")
        builder.add_edge("match_cv", "cv_feedback")
        builder.add_edge("cv_feedback", "score_project")
        builder.add_edge("score_project", "summarise")
        builder.add_edge("summarise", END)
        return builder.compile()

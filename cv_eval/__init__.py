# =============================================================================
# AI CV & Project Evaluator
# =============================================================================
# Evaluates a candidate's CV and project report through a six-stage LLM
# pipeline, grounded by lexically-retrieved job requirements and a scoring
# rubric ("RAG-lite"). Every LLM call degrades to a deterministic fallback
# when the provider is unavailable, so a job only fails on genuine errors.
#
# Package structure:
#   cv_eval/
#   ├── api/          → FastAPI route handlers (upload, evaluate, vectordb)
#   ├── agents/       → Evaluation stages, rule tables, LangGraph orchestrator
#   ├── models/       → Pydantic V2 schemas (stage results, requests, responses)
#   └── services/     → Document store, retrieval, LLM providers, resilient
#                        call wrapper, repositories, text extraction
# =============================================================================

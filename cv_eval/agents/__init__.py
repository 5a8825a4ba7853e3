# =============================================================================
# Agents Package — Evaluation Stages and LangGraph Orchestration
# =============================================================================
#   - orchestrator.py: job lifecycle; runs the linear LangGraph pipeline
#     extract → structure_cv → match_cv → cv_feedback → score_project →
#     summarise, one asyncio task per job
#   - cv_analyst.py: CV structuring, job matching and feedback stages
#   - project_analyst.py: project scoring, feedback, summary, recommendation
#   - rules.py: keyword tables behind every rule-based fallback
#   - parsing.py: strict JSON / text parsing of model output
# =============================================================================

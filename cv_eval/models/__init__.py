# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
#   - evaluation.py: stage results (CVStructured, MatchResult, ProjectScore)
#     and the final EvaluationResult attached to completed jobs
#   - requests.py / responses.py: the HTTP contract
# =============================================================================

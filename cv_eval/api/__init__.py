# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
# Each module defines a FastAPI APIRouter for a specific feature:
#   - uploads.py: CV + project upload and upload lookup
#   - evaluate.py: start an evaluation job, poll its status/result
#   - documents.py: reference document store status and search
#   - deps.py: dependencies resolving app-scoped services from app.state
# =============================================================================

# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field


class EvaluateRequest(BaseModel):
    """
    Request body for POST /evaluate — start evaluating an upload.

    Example:
        {"upload_id": "6f1c0d9e-..."}
    """

    # Optional at the schema level so a missing id surfaces as the domain's
    # InvalidUploadIdError (400) rather than a generic 422.
    upload_id: str | None = Field(
        default=None,
        description="ID returned by POST /upload",
        examples=["6f1c0d9e-2b1f-4a53-9f59-2d2a4c7f8e11"],
    )

    model_config = ConfigDict(populate_by_name=True)

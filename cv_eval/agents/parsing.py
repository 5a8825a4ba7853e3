# =============================================================================
# Model Output Parsing
# =============================================================================
#
# Models are asked for "ONLY JSON" but often wrap it in a ```json fence.
# The fence is stripped, then the body must be a JSON object that
# validates against the stage's Pydantic schema. Anything else raises
# MalformedModelResponseError, which ResilientLLM turns into a fallback.
# =============================================================================

from __future__ import annotations

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from cv_eval.exceptions import MalformedModelResponseError

M = TypeVar("M", bound=BaseModel)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _FENCE.match(stripped)
    return match.group(1) if match else stripped


def parse_json_object(text: str) -> dict:
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise MalformedModelResponseError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedModelResponseError(
            f"expected a JSON object, got {type(data).__name__}"
        )
    return data


def parse_model(text: str, schema: type[M]) -> M:
    """Parse a JSON completion into `schema`."""
    data = parse_json_object(text)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise MalformedModelResponseError(
            f"{schema.__name__} validation failed: {exc.error_count()} error(s)"
        ) from exc


def parse_text(text: str) -> str:
    """Free-text completions only need trimming."""
    cleaned = text.strip()
    if not cleaned:
        raise MalformedModelResponseError("empty text")
    return cleaned

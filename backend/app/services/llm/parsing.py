"""Turn raw model text into validated pydantic models."""
from __future__ import annotations

import json
import re
from typing import Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.services.llm.base import FailureKind

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```\s*$")


def strip_code_fences(text: str) -> str:
    return _FENCE_END.sub("", _FENCE_START.sub("", text.strip())).strip()


def parse_model_output(text: str, schema: Type[ModelT]) -> Tuple[ModelT | None, FailureKind | None, str | None]:
    """Return (model, None, None) on success or (None, failure kind, detail)."""
    try:
        payload = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        return None, FailureKind.INVALID_JSON, str(exc)
    if not isinstance(payload, dict):
        return None, FailureKind.SCHEMA_INVALID, "top-level value is not an object"
    try:
        return schema.model_validate(payload), None, None
    except ValidationError as exc:
        return None, FailureKind.SCHEMA_INVALID, str(exc)

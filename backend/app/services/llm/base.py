"""Text generator interface and its typed result."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    TIMEOUT = "timeout"
    NETWORK = "network"
    API_ERROR = "api_error"
    EMPTY_RESPONSE = "empty_response"
    INVALID_JSON = "invalid_json"
    SCHEMA_INVALID = "schema_invalid"


@dataclass(frozen=True)
class GenerationResult:
    """Either ``text`` or ``failure`` is set, never both."""

    text: Optional[str] = None
    failure: Optional[FailureKind] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None

    @classmethod
    def success(cls, text: str) -> "GenerationResult":
        return cls(text=text)

    @classmethod
    def failed(cls, kind: FailureKind, detail: str | None = None) -> "GenerationResult":
        return cls(failure=kind, detail=detail)


class TextGenerator:
    """Base interface for text generation providers."""

    model_name: str = "unknown"

    @property
    def available(self) -> bool:
        return True

    def generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        raise NotImplementedError

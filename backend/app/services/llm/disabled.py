"""Generator used when no model credentials are configured."""
from __future__ import annotations

from app.services.llm.base import FailureKind, GenerationResult, TextGenerator


class DisabledTextGenerator(TextGenerator):
    """Always reports missing credentials so callers take their fallback path."""

    model_name = "disabled"

    @property
    def available(self) -> bool:
        return False

    def generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        return GenerationResult.failed(FailureKind.MISSING_CREDENTIALS, "model credentials are not configured")

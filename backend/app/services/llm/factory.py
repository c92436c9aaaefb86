"""Text generator factory."""
from __future__ import annotations

from functools import lru_cache

from app.core.config import settings
from app.services.llm.base import TextGenerator
from app.services.llm.disabled import DisabledTextGenerator
from app.services.llm.openai_generator import OpenAITextGenerator


@lru_cache
def get_text_generator() -> TextGenerator:
    api_key = (settings.openai_api_key or "").strip()
    if not api_key:
        return DisabledTextGenerator()
    return OpenAITextGenerator(
        api_key=api_key,
        model=settings.openai_model,
        timeout_seconds=settings.llm_timeout_seconds,
    )

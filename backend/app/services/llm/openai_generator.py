"""OpenAI chat-completions backed text generator."""
from __future__ import annotations

import logging
from typing import Optional

import openai

from app.services.llm.base import FailureKind, GenerationResult, TextGenerator

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a calm, focused planning assistant. Reply with a single JSON object and nothing else."


class OpenAITextGenerator(TextGenerator):
    """Calls the chat completions API in JSON mode with a hard timeout and no SDK retries."""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout_seconds: float,
        client: Optional[openai.OpenAI] = None,
    ) -> None:
        self.model_name = model
        self._timeout = timeout_seconds
        self._client = client or openai.OpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        try:
            completion = self._client.chat.completions.create(
                model=self.model_name,
                response_format={"type": "json_object"},
                max_tokens=max_tokens,
                temperature=0.7,
                timeout=self._timeout,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.APITimeoutError as exc:
            logger.warning("Model call timed out after %ss", self._timeout)
            return GenerationResult.failed(FailureKind.TIMEOUT, str(exc))
        except openai.APIConnectionError as exc:
            logger.warning("Model call failed to connect: %s", exc)
            return GenerationResult.failed(FailureKind.NETWORK, str(exc))
        except openai.AuthenticationError as exc:
            logger.warning("Model call rejected credentials")
            return GenerationResult.failed(FailureKind.MISSING_CREDENTIALS, str(exc))
        except openai.OpenAIError as exc:
            logger.warning("Model call failed: %s", exc)
            return GenerationResult.failed(FailureKind.API_ERROR, str(exc))

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            return GenerationResult.failed(FailureKind.EMPTY_RESPONSE)
        return GenerationResult.success(content)

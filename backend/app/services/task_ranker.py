"""Ask the model to pick one task from the deterministic shortlist."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.services.llm.base import FailureKind, TextGenerator
from app.services.llm.parsing import parse_model_output
from app.services.task_scoring import RankingContext

logger = logging.getLogger(__name__)


class RankedChoice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recommended_task_id: str = Field(..., alias="recommendedTaskId", min_length=1)
    recommended_next_action_text: str = Field(..., alias="recommendedNextActionText")
    explanation: str
    confidence: Literal["low", "med", "high"]


@dataclass
class RankingResult:
    choice: Optional[RankedChoice] = None
    failure: Optional[FailureKind] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.choice is not None


def _format_candidate(entry: Dict[str, Any]) -> str:
    def _value(key: str, missing: str = "?") -> Any:
        value = entry.get(key)
        return missing if value is None else value

    return (
        f"- id: {entry['id']} | title: {entry['title']} | notes: {entry.get('notes') or ''} | "
        f"estMin: {_value('estimated_minutes')} | priority: {_value('priority')} | "
        f"urgency: {_value('urgency')} | deadline: {_value('deadline_at', 'none')}"
    )


def build_ranking_prompt(
    shortlist: Sequence[Dict[str, Any]],
    context: RankingContext,
    recent_summary: str,
    interests_summary: str,
) -> str:
    candidates = "\n".join(_format_candidate(entry) for entry in shortlist)
    return (
        "You are a calm, focused assistant helping the user choose a single next action from their task list.\n\n"
        "Context:\n"
        f"- Available time: {context.time_minutes} minutes\n"
        f"- Energy level: {context.energy}\n"
        f"- Urgency: {context.urgency}\n\n"
        "The user's tasks overall (reflects their interests and what they care about):\n"
        f"{interests_summary}\n\n"
        f"Recent activity (for context only): {recent_summary}\n\n"
        "Candidates to choose from (top of list are pre-ranked by relevance; pick one that fits both context "
        "AND the user's interests above):\n"
        f"{candidates}\n\n"
        "Choose exactly ONE task that fits the user's current context and aligns with their interests. "
        "Prefer variety when several tasks match. Respond with a JSON object only (no markdown, no explanation "
        "outside JSON) with these exact keys:\n"
        "- recommendedTaskId (string, one of the task ids above)\n"
        "- recommendedNextActionText (string, the task title or a one-line next action)\n"
        "- explanation (string, 1-3 sentences why this task fits now and how it matches their interests)\n"
        '- confidence ("low" | "med" | "high")'
    )


def rank_with_model(
    generator: TextGenerator,
    shortlist: Sequence[Dict[str, Any]],
    context: RankingContext,
    recent_summary: str,
    interests_summary: str,
) -> RankingResult:
    """One model call; the chosen id must belong to the shortlist."""
    if not shortlist:
        return RankingResult(failure=FailureKind.SCHEMA_INVALID, detail="empty shortlist")

    prompt = build_ranking_prompt(shortlist, context, recent_summary, interests_summary)
    result = generator.generate(prompt, max_tokens=settings.ranking_max_tokens)
    if not result.ok:
        return RankingResult(failure=result.failure, detail=result.detail)

    choice, failure, detail = parse_model_output(result.text or "", RankedChoice)
    if choice is None:
        return RankingResult(failure=failure, detail=detail)

    allowed_ids = {str(entry["id"]) for entry in shortlist}
    if choice.recommended_task_id.strip() not in allowed_ids:
        logger.warning("Model picked task %s outside the shortlist", choice.recommended_task_id)
        return RankingResult(failure=FailureKind.SCHEMA_INVALID, detail="task id not in shortlist")
    return RankingResult(choice=choice)

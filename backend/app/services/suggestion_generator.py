"""Generate one new next-action idea with the model, guarded against repeats."""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from app.core.auth import Principal
from app.core.config import settings
from app.db.models.generated_suggestion import GeneratedSuggestion
from app.db.types import utcnow
from app.observability.metrics import log_metric
from app.observability.tracing import annotate, trace
from app.services import suggestion_store
from app.services.interests import summarize_interests, summarize_recent_behavior
from app.services.llm.base import FailureKind, TextGenerator
from app.services.llm.parsing import parse_model_output
from app.services.quota import lock_generated_quota, remaining_generated, utc_day
from app.services.similarity import is_too_similar, uniqueness_threshold
from app.services.task_scoring import RankingContext, get_scored_shortlist
from app.services.task_service import list_open_task_titles

logger = logging.getLogger(__name__)

Uniqueness = Literal["familiar", "related", "novel"]

MAX_GENERATION_ATTEMPTS = 2
NEXT_ACTION_MAX_LENGTH = 120
MAX_TAGS = 3
SHORTLIST_PROMPT_TITLES = 5

STATUS_ACCEPTED = "accepted"
STATUS_DAILY_LIMIT = "daily_limit"
STATUS_FALLBACK = "fallback"

UNAVAILABLE_MESSAGE = "AI is unavailable. Here's a short idea you can try:"
FALLBACK_IDEA = "Spend 15 minutes on the one thing that would make tomorrow easier."
NO_NEW_IDEA_MESSAGE = "I couldn't find a truly new idea right now. Try adjusting your interests or time window."

SOURCE_INTERESTS = "interests"
SOURCE_RECENT_BEHAVIOR = "recent_behavior"
SOURCE_SHORTLIST = "shortlist"
SOURCE_IDEA_HINT = "idea_hint"
SOURCE_AVOID_LIST = "avoid_list"


def daily_limit_message(cap: int) -> str:
    return f"You've reached your {cap} AI suggestions for today. Try again tomorrow."


class GeneratedTaskDraft(BaseModel):
    """The ``generatedTask`` object the model returns."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    next_action: str = Field(..., alias="nextAction")
    estimated_minutes: int = Field(..., alias="estimatedMinutes", ge=1, strict=True)
    tags: List[str] = Field(default_factory=list)
    reasoning: str
    confidence: Literal["low", "med", "high"]

    @field_validator("title", "next_action")
    @classmethod
    def strip_required_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned

    @field_validator("reasoning")
    @classmethod
    def strip_reasoning(cls, value: str) -> str:
        return value.strip()

    @field_validator("estimated_minutes", mode="before")
    @classmethod
    def whole_minutes(cls, value: Any) -> Any:
        # 30.0 counts as a whole number; 30.5 and "30" do not.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("next_action")
    @classmethod
    def truncate_next_action(cls, value: str) -> str:
        return value[:NEXT_ACTION_MAX_LENGTH]

    @field_validator("tags")
    @classmethod
    def limit_tags(cls, value: List[str]) -> List[str]:
        cleaned = [tag.strip() for tag in value if tag and tag.strip()]
        return cleaned[:MAX_TAGS]


class GeneratedEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["generated"]
    generated_task: GeneratedTaskDraft = Field(..., alias="generatedTask")
    model: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class GenerationContext:
    time_minutes: int
    energy: str
    uniqueness: Uniqueness
    idea_hint: Optional[str] = None


@dataclass
class GenerationAttempt:
    """One model call, parsed. ``failure`` is set when no draft was produced."""

    draft: Optional[GeneratedTaskDraft] = None
    model: Optional[str] = None
    failure: Optional[FailureKind] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.draft is not None


@dataclass
class SuggestionOutcome:
    status: str
    suggestion: Optional[GeneratedSuggestion] = None
    message: Optional[str] = None
    fallback_idea: Optional[str] = None
    failure: Optional[FailureKind] = None
    attempts: int = 0
    remaining_today: int = 0
    source_features: List[str] = field(default_factory=list)


def build_generate_prompt(
    context: GenerationContext,
    interests_summary: str,
    behavior_summary: str,
    shortlist_titles: Sequence[str] = (),
    reference_texts: Optional[Sequence[str]] = None,
) -> str:
    minutes = context.time_minutes
    hint = (context.idea_hint or "").strip()
    hint_text = ""
    if hint:
        hint_text = (
            f'\n\nUser preference hint (soft constraint): "{hint}". Prefer tasks that match this hint when possible, '
            "but do not force it if it conflicts with time, energy, or uniqueness requirements."
        )

    grounding_text = ""
    if shortlist_titles:
        titles = "\n".join(f"- {title}" for title in shortlist_titles)
        grounding_text = (
            "\n\nThe user's current top tasks (for grounding only; do not repeat them):\n" + titles
        )

    avoid_text = ""
    if reference_texts:
        avoid = "\n".join(f"- {text}" for text in reference_texts)
        avoid_text = (
            "\n\nIMPORTANT: Your suggestion MUST be clearly different from these "
            "(do not suggest the same or very similar action):\n"
            f"{avoid}\nSuggest something new that is not listed above."
        )

    uniqueness_text = (
        "\n\nUniqueness requirement:\n"
        '- If "familiar": Suggest a task that closely aligns with patterns from previously accepted tasks. '
        "It should feel like the same kind of work the user has done before.\n"
        '- If "related": Suggest a task that is adjacent to existing interests/projects but not a direct repeat. '
        "Explore similar themes with a new angle.\n"
        '- If "novel": Suggest a genuinely new skill or domain the user has not tried before, while still '
        "aligning with their interests and fitting the time and energy constraints."
    )

    return (
        "You suggest ONE new, concrete next action. You do NOT choose from an existing list. Output valid JSON only.\n\n"
        f"Context: available time = {minutes} minutes; energy = {context.energy}; "
        f"uniqueness preference = {context.uniqueness}.{hint_text}\n\n"
        f"The suggestion MUST fit within the user's available time ({minutes} min). Prefer estimatedMinutes "
        "that use most of this window (70-100%) when it makes sense.\n\n"
        f"Interests (from user's goals/tasks, themes only): {interests_summary}\n\n"
        f"Recent behavior (counts only): {behavior_summary}"
        f"{grounding_text}"
        f"{avoid_text}"
        f"{uniqueness_text}\n\n"
        "Output JSON only, no markdown:\n"
        '{"type":"generated","generatedTask":{"title":"...","nextAction":"...","estimatedMinutes":N,'
        '"tags":["..."],"reasoning":"...","confidence":"low|med|high"}}\n\n'
        f"Rules: title = one short actionable sentence. nextAction = single step <= {NEXT_ACTION_MAX_LENGTH} chars. "
        f"estimatedMinutes must be <= {minutes} and should match the suggested action length. tags = 0-{MAX_TAGS}. "
        "reasoning = 1-2 sentences. The suggestion MUST match the uniqueness preference: "
        f"{context.uniqueness}."
    )


def get_generated_suggestion(
    generator: TextGenerator,
    context: GenerationContext,
    interests_summary: str,
    behavior_summary: str,
    shortlist_titles: Sequence[str] = (),
    reference_texts: Optional[Sequence[str]] = None,
) -> GenerationAttempt:
    """Make a single model call and validate its output. Never raises for model errors."""
    prompt = build_generate_prompt(context, interests_summary, behavior_summary, shortlist_titles, reference_texts)
    result = generator.generate(prompt, max_tokens=settings.generated_max_tokens)
    if not result.ok:
        return GenerationAttempt(failure=result.failure, detail=result.detail)

    envelope, failure, detail = parse_model_output(result.text or "", GeneratedEnvelope)
    if envelope is None:
        return GenerationAttempt(failure=failure, detail=detail)

    draft = envelope.generated_task
    if draft.estimated_minutes > context.time_minutes:
        logger.warning(
            "Model estimate %s exceeds available %s minutes; clamping",
            draft.estimated_minutes,
            context.time_minutes,
        )
        draft = draft.model_copy(update={"estimated_minutes": context.time_minutes})
    return GenerationAttempt(draft=draft, model=envelope.model or generator.model_name)


def shortlist_hash(user_id: Any, day: Any, context: GenerationContext, shortlist_ids: Sequence[str]) -> str:
    raw = "|".join(
        [
            str(user_id),
            str(day),
            str(context.time_minutes),
            context.energy,
            context.uniqueness,
            ",".join(shortlist_ids),
        ]
    )
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def build_reference_texts(db: Session, user_id: Any) -> List[str]:
    texts = [title for title in list_open_task_titles(db, user_id) if title]
    texts.extend(suggestion_store.recent_suggestion_texts(db, user_id))
    return texts


def suggest_next_action(
    db: Session,
    principal: Principal,
    context: GenerationContext,
    generator: TextGenerator,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> SuggestionOutcome:
    """
    Quota check, then up to two model attempts.

    A model failure on the first attempt returns the "unavailable" fallback.
    A duplicate triggers one retry with the avoid-list in the prompt; a failure
    or another duplicate on the retry returns the "no new idea" fallback.
    """
    now = now or utcnow()
    user_id = principal.user_id
    cap = settings.generated_daily_cap

    remaining = remaining_generated(db, user_id, now, cap)
    if remaining <= 0:
        logger.info("Generated suggestion quota exhausted for %s", user_id)
        log_metric("suggestion.daily_limit", 1, {"user_id": str(user_id)})
        return SuggestionOutcome(status=STATUS_DAILY_LIMIT, message=daily_limit_message(cap))

    interests_summary = summarize_interests(db, user_id)
    behavior_summary = summarize_recent_behavior(db, user_id)
    ranking_context = RankingContext(time_minutes=context.time_minutes, energy=context.energy, urgency="med")
    shortlist = get_scored_shortlist(db, user_id, ranking_context, now=now)
    shortlist_titles = [entry["title"] for entry in shortlist[:SHORTLIST_PROMPT_TITLES]]
    reference_texts = build_reference_texts(db, user_id)
    threshold = uniqueness_threshold(context.uniqueness)

    features = [SOURCE_INTERESTS, SOURCE_RECENT_BEHAVIOR]
    if shortlist_titles:
        features.append(SOURCE_SHORTLIST)
    if (context.idea_hint or "").strip():
        features.append(SOURCE_IDEA_HINT)

    metadata = {
        "time_minutes": context.time_minutes,
        "energy": context.energy,
        "uniqueness": context.uniqueness,
        "reference_count": len(reference_texts),
    }
    with trace("suggestion.generate", metadata=metadata, user_id=str(user_id), request_id=request_id) as span:
        attempt: Optional[GenerationAttempt] = None
        attempts = 0
        for attempts in range(1, MAX_GENERATION_ATTEMPTS + 1):
            avoid = reference_texts if attempts > 1 else None
            attempt = get_generated_suggestion(
                generator,
                context,
                interests_summary,
                behavior_summary,
                shortlist_titles,
                avoid,
            )
            if not attempt.ok:
                logger.warning(
                    "Generated suggestion attempt %s failed: %s (%s)",
                    attempts,
                    attempt.failure.value if attempt.failure else "unknown",
                    attempt.detail,
                )
                break
            draft = attempt.draft
            if not is_too_similar(draft.title, draft.next_action, reference_texts, threshold):
                break
            logger.info("Generated suggestion attempt %s too similar to existing items", attempts)
            attempt = GenerationAttempt(failure=None)

        accepted = attempt is not None and attempt.ok
        annotate(
            span,
            {
                **metadata,
                "attempts": attempts,
                "accepted": accepted,
                "failure": attempt.failure.value if attempt and attempt.failure else None,
            },
        )

        if not accepted:
            log_metric("suggestion.fallback", 1, {"attempts": attempts})
            if attempts == 1 and attempt is not None and attempt.failure is not None:
                return SuggestionOutcome(
                    status=STATUS_FALLBACK,
                    message=UNAVAILABLE_MESSAGE,
                    fallback_idea=FALLBACK_IDEA,
                    failure=attempt.failure,
                    attempts=attempts,
                    remaining_today=remaining,
                )
            return SuggestionOutcome(
                status=STATUS_FALLBACK,
                message=NO_NEW_IDEA_MESSAGE,
                fallback_idea="",
                failure=attempt.failure if attempt else None,
                attempts=attempts,
                remaining_today=remaining,
            )

        if attempts > 1:
            features.append(SOURCE_AVOID_LIST)
        digest = shortlist_hash(user_id, utc_day(now), context, [entry["id"] for entry in shortlist])
        try:
            used = lock_generated_quota(db, user_id, now)
            if used >= cap:
                db.rollback()
                logger.info("Generated suggestion quota filled while the model was running for %s", user_id)
                log_metric("suggestion.daily_limit", 1, {"attempts": attempts})
                return SuggestionOutcome(
                    status=STATUS_DAILY_LIMIT,
                    message=daily_limit_message(cap),
                    attempts=attempts,
                )
            suggestion = suggestion_store.create_suggestion(
                db,
                user_id,
                context=context,
                draft=attempt.draft,
                model=attempt.model or generator.model_name,
                source_features=features,
                shortlist_hash=digest,
                created_at=now,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(suggestion)

    log_metric("suggestion.accepted", 1, {"attempts": attempts})
    logger.info("Stored generated suggestion %s after %s attempt(s)", suggestion.id, attempts)
    return SuggestionOutcome(
        status=STATUS_ACCEPTED,
        suggestion=suggestion,
        attempts=attempts,
        remaining_today=max(0, cap - used - 1),
        source_features=features,
    )

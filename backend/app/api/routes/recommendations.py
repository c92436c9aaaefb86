"""Recommendation API routes."""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.schemas.recommendation import (
    DecisionRequest,
    FallbackOut,
    GeneratedTaskOut,
    GenerateSuggestionRequest,
    GenerateSuggestionResponse,
    NextTaskRequest,
    NextTaskResponse,
    QuotaResponse,
    RecommendationEventOut,
    RecommendationHistoryResponse,
    SuggestionDecisionResponse,
    SuggestionMeta,
    TaskBrief,
)
from app.core.auth import Principal, get_current_principal
from app.core.config import settings
from app.db.deps import get_db
from app.db.models.recommendation_event import RecommendationEvent
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.llm.base import TextGenerator
from app.services.llm.factory import get_text_generator
from app.services.quota import remaining_generated, remaining_ranking, utc_day
from app.services.recommendation_service import (
    STATUS_EMPTY,
    list_recent_events,
    recommend_next_task,
    record_event_decision,
)
from app.services.suggestion_generator import (
    STATUS_ACCEPTED,
    STATUS_DAILY_LIMIT,
    GenerationContext,
    suggest_next_action,
)
from app.services.suggestion_store import confirm_suggestion, skip_suggestion
from app.services.task_scoring import RankingContext
from app.services.user_service import get_or_create_user

router = APIRouter()

EMPTY_MESSAGE = "No open tasks yet. Add a task or ask for a new idea."


@router.post("/recommendations", response_model=GenerateSuggestionResponse, tags=["recommendations"])
def generate_suggestion(
    payload: GenerateSuggestionRequest,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    generator: TextGenerator = Depends(get_text_generator),
) -> GenerateSuggestionResponse:
    """Suggest one new next action that fits the stated time, energy and novelty."""
    request_id = getattr(http_request.state, "request_id", None)
    get_or_create_user(db, principal)

    context = GenerationContext(
        time_minutes=payload.resolved_time_minutes,
        energy=payload.energy,
        uniqueness=payload.uniqueness,
        idea_hint=payload.idea_hint,
    )
    outcome = suggest_next_action(db, principal, context, generator, request_id=request_id)
    log_metric("recommendations.generate.status", 1, {"status": outcome.status})

    if outcome.status == STATUS_DAILY_LIMIT:
        return GenerateSuggestionResponse(
            status=outcome.status,
            daily_limit_reached=True,
            message=outcome.message,
            request_id=request_id or "",
        )

    if outcome.status != STATUS_ACCEPTED:
        return GenerateSuggestionResponse(
            status=outcome.status,
            message=outcome.message,
            fallback=FallbackOut(message=outcome.message or "", deterministic_idea=outcome.fallback_idea or ""),
            remaining_today=outcome.remaining_today,
            request_id=request_id or "",
        )

    suggestion = outcome.suggestion
    return GenerateSuggestionResponse(
        status=outcome.status,
        recommendation_id=suggestion.id,
        generated_task=GeneratedTaskOut(
            title=suggestion.title,
            next_action=suggestion.next_action,
            estimated_minutes=suggestion.estimated_minutes,
            tags=list(suggestion.tags or []),
            reasoning=suggestion.reasoning,
            confidence=suggestion.confidence,
        ),
        model=suggestion.model,
        meta=SuggestionMeta(
            source_features=list(suggestion.source_features or []),
            shortlist_hash=suggestion.shortlist_hash,
        ),
        remaining_today=outcome.remaining_today,
        request_id=request_id or "",
    )


@router.get("/recommendations", response_model=RecommendationHistoryResponse, tags=["recommendations"])
def recommendation_history(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> RecommendationHistoryResponse:
    """Return the most recent next-task recommendations."""
    events = list_recent_events(db, principal)
    return RecommendationHistoryResponse(events=[_serialize_event(event) for event in events])


@router.get("/recommendations/quota", response_model=QuotaResponse, tags=["recommendations"])
def recommendation_quota(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> QuotaResponse:
    return QuotaResponse(
        day=utc_day(),
        generated_cap=settings.generated_daily_cap,
        generated_remaining=remaining_generated(db, principal.user_id),
        ranking_cap=settings.ranking_daily_cap,
        ranking_remaining=remaining_ranking(db, principal.user_id),
    )


@router.post("/recommendations/next", response_model=NextTaskResponse, tags=["recommendations"])
def next_task(
    payload: NextTaskRequest,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    generator: TextGenerator = Depends(get_text_generator),
) -> NextTaskResponse:
    """Pick one of the user's open tasks for the current context."""
    request_id = getattr(http_request.state, "request_id", None)
    get_or_create_user(db, principal)

    context = RankingContext(
        time_minutes=payload.resolved_time_minutes,
        energy=payload.energy,
        urgency=payload.urgency,
    )
    outcome = recommend_next_task(
        db,
        principal,
        context,
        generator,
        exclude_task_id=payload.exclude_task_id,
        request_id=request_id,
    )
    if outcome.status == STATUS_EMPTY:
        return NextTaskResponse(status=outcome.status, message=EMPTY_MESSAGE, request_id=request_id or "")
    return NextTaskResponse(
        status=outcome.status,
        event=_serialize_event(outcome.event),
        request_id=request_id or "",
    )


@router.post(
    "/recommendations/events/{event_id}/decision",
    response_model=RecommendationEventOut,
    tags=["recommendations"],
)
def decide_event(
    event_id: UUID,
    payload: DecisionRequest,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> RecommendationEventOut:
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/recommendations/events/{id}/decision",
        "event_id": str(event_id),
        "decision": payload.decision,
    }
    with trace("recommendation.decision", metadata=metadata, user_id=str(principal.user_id), request_id=request_id):
        event = record_event_decision(db, principal, event_id, payload.decision)
    log_metric(f"recommendation.{payload.decision}", 1, {"source": event.source})
    return _serialize_event(event)


@router.post(
    "/recommendations/generated/{suggestion_id}/confirm",
    response_model=SuggestionDecisionResponse,
    tags=["recommendations"],
)
def confirm_generated(
    suggestion_id: UUID,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> SuggestionDecisionResponse:
    """Accept a generated suggestion and add it to the task list."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "suggestion.confirm",
        metadata={"suggestion_id": str(suggestion_id)},
        user_id=str(principal.user_id),
        request_id=request_id,
    ):
        suggestion, task = confirm_suggestion(db, principal, suggestion_id)
    log_metric("suggestion.confirmed", 1, {"suggestion_id": str(suggestion_id)})
    return SuggestionDecisionResponse(
        id=suggestion.id,
        decision=suggestion.decision,
        decided_at=suggestion.decided_at,
        created_task_id=task.id,
        request_id=request_id or "",
    )


@router.post(
    "/recommendations/generated/{suggestion_id}/skip",
    response_model=SuggestionDecisionResponse,
    tags=["recommendations"],
)
def skip_generated(
    suggestion_id: UUID,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> SuggestionDecisionResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "suggestion.skip",
        metadata={"suggestion_id": str(suggestion_id)},
        user_id=str(principal.user_id),
        request_id=request_id,
    ):
        suggestion = skip_suggestion(db, principal, suggestion_id)
    log_metric("suggestion.skipped", 1, {"suggestion_id": str(suggestion_id)})
    return SuggestionDecisionResponse(
        id=suggestion.id,
        decision=suggestion.decision,
        decided_at=suggestion.decided_at,
        request_id=request_id or "",
    )


def _serialize_event(event: RecommendationEvent) -> RecommendationEventOut:
    task: Optional[TaskBrief] = None
    if event.task is not None:
        task = TaskBrief(id=event.task.id, title=event.task.title, notes=event.task.notes)
    return RecommendationEventOut(
        id=event.id,
        task=task,
        context_time_minutes=event.context_time_minutes,
        context_energy=event.context_energy,
        context_urgency=event.context_urgency,
        source=event.source,
        next_action_text=event.next_action_text,
        explanation=event.explanation,
        confidence=event.confidence,
        score=event.score,
        decision=event.decision,
        created_at=event.created_at,
        decided_at=event.decided_at,
    )

"""Pick one of the user's existing tasks, with the model when budget allows."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from app.core.auth import Principal
from app.db.models.generated_suggestion import DECISION_ACCEPTED, DECISION_PENDING, DECISION_SKIPPED
from app.db.models.recommendation_event import RecommendationEvent
from app.db.models.task import Task
from app.db.types import utcnow
from app.observability.metrics import log_metric
from app.observability.tracing import annotate, trace
from app.services.interests import summarize_interests, summarize_recent_behavior
from app.services.llm.base import TextGenerator
from app.services.quota import can_use_ranking, increment_ranking_budget
from app.services.task_ranker import rank_with_model
from app.services.task_scoring import RankingContext, build_shortlist, pick_recommendation
from app.services.task_service import list_open_tasks

logger = logging.getLogger(__name__)

SOURCE_DETERMINISTIC = "deterministic"
SOURCE_LLM = "llm"

STATUS_RECOMMENDED = "recommended"
STATUS_EMPTY = "empty"

HISTORY_LIMIT = 50


@dataclass
class NextTaskOutcome:
    status: str
    event: Optional[RecommendationEvent] = None
    task: Optional[Task] = None


def recommend_next_task(
    db: Session,
    principal: Principal,
    context: RankingContext,
    generator: TextGenerator,
    exclude_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> NextTaskOutcome:
    """Model pick over the shortlist when possible, deterministic pick otherwise."""
    now = now or utcnow()
    user_id = principal.user_id
    tasks = list_open_tasks(db, user_id)
    if not tasks:
        return NextTaskOutcome(status=STATUS_EMPTY)

    by_id = {str(task.id): task for task in tasks}
    metadata = {
        "time_minutes": context.time_minutes,
        "energy": context.energy,
        "urgency": context.urgency,
        "open_tasks": len(tasks),
    }

    with trace("recommendation.next", metadata=metadata, user_id=str(user_id), request_id=request_id) as span:
        event: Optional[RecommendationEvent] = None
        try:
            if generator.available and can_use_ranking(db, user_id, now):
                shortlist = build_shortlist(tasks, context, exclude_task_id=exclude_task_id, now=now)
                ranked = rank_with_model(
                    generator,
                    shortlist,
                    context,
                    summarize_recent_behavior(db, user_id),
                    summarize_interests(db, user_id),
                )
                if ranked.ok:
                    choice = ranked.choice
                    chosen = by_id[choice.recommended_task_id.strip()]
                    used = increment_ranking_budget(db, user_id, now)
                    score = next((entry["score"] for entry in shortlist if entry["id"] == str(chosen.id)), None)
                    event = _new_event(
                        user_id,
                        context,
                        task_id=chosen.id,
                        source=SOURCE_LLM,
                        next_action_text=choice.recommended_next_action_text.strip() or chosen.title,
                        explanation=choice.explanation,
                        confidence=choice.confidence,
                        score=score,
                        created_at=now,
                    )
                    logger.info("Model ranking used %s of today's budget for %s", used, user_id)
                else:
                    logger.warning(
                        "Model ranking failed: %s (%s)",
                        ranked.failure.value if ranked.failure else "unknown",
                        ranked.detail,
                    )
                    annotate(span, {**metadata, "ranking_failure": ranked.failure.value if ranked.failure else None})

            if event is None:
                pick = pick_recommendation(tasks, context, exclude_task_id=exclude_task_id, now=now)
                event = _new_event(
                    user_id,
                    context,
                    task_id=pick.task_id,
                    source=SOURCE_DETERMINISTIC,
                    next_action_text=pick.task_title,
                    explanation=pick.explanation,
                    confidence=pick.confidence,
                    score=pick.score,
                    created_at=now,
                )

            db.add(event)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(event)

    log_metric(f"recommendation.{event.source}", 1, {"user_id": str(user_id)})
    return NextTaskOutcome(status=STATUS_RECOMMENDED, event=event, task=by_id.get(str(event.task_id)))


def _new_event(
    user_id: UUID,
    context: RankingContext,
    *,
    task_id: UUID,
    source: str,
    next_action_text: Optional[str],
    explanation: str,
    confidence: str,
    score: Optional[int],
    created_at: datetime,
) -> RecommendationEvent:
    return RecommendationEvent(
        user_id=user_id,
        task_id=task_id,
        context_time_minutes=context.time_minutes,
        context_energy=context.energy,
        context_urgency=context.urgency,
        source=source,
        next_action_text=next_action_text,
        explanation=explanation,
        confidence=confidence,
        score=score,
        decision=DECISION_PENDING,
        created_at=created_at,
    )


def record_event_decision(db: Session, principal: Principal, event_id: UUID, decision: str) -> RecommendationEvent:
    """Flip a pending event to accepted or skipped, once."""
    if decision not in (DECISION_ACCEPTED, DECISION_SKIPPED):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Unsupported decision")

    try:
        updated = (
            db.query(RecommendationEvent)
            .filter(
                RecommendationEvent.id == event_id,
                RecommendationEvent.user_id == principal.user_id,
                RecommendationEvent.decision == DECISION_PENDING,
            )
            .update({"decision": decision, "decided_at": utcnow()}, synchronize_session=False)
        )
        if updated == 0:
            exists = (
                db.query(RecommendationEvent.id)
                .filter(RecommendationEvent.id == event_id, RecommendationEvent.user_id == principal.user_id)
                .first()
            )
            if exists is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recommendation not found")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Recommendation already used")
        db.commit()
    except Exception:
        db.rollback()
        raise

    event = db.get(RecommendationEvent, event_id)
    db.refresh(event)
    return event


def list_recent_events(db: Session, principal: Principal, limit: int = HISTORY_LIMIT) -> List[RecommendationEvent]:
    return (
        db.query(RecommendationEvent)
        .options(joinedload(RecommendationEvent.task))
        .filter(RecommendationEvent.user_id == principal.user_id)
        .order_by(desc(RecommendationEvent.created_at))
        .limit(limit)
        .all()
    )

"""Persistence for generated suggestions and their one-way accept/skip decision."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import Principal
from app.db.models.generated_suggestion import (
    DECISION_ACCEPTED,
    DECISION_PENDING,
    DECISION_SKIPPED,
    GeneratedSuggestion,
)
from app.db.models.task import Task
from app.db.types import utcnow
from app.services.task_service import create_task

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from app.services.suggestion_generator import GeneratedTaskDraft, GenerationContext

logger = logging.getLogger(__name__)

RECENT_SUGGESTION_LIMIT = 20


def create_suggestion(
    db: Session,
    user_id: UUID,
    *,
    context: "GenerationContext",
    draft: "GeneratedTaskDraft",
    model: str,
    source_features: Sequence[str],
    shortlist_hash: str,
    created_at: Optional[datetime] = None,
) -> GeneratedSuggestion:
    """Insert a pending suggestion. The caller owns the commit."""
    suggestion = GeneratedSuggestion(
        user_id=user_id,
        context_time_minutes=context.time_minutes,
        context_energy=context.energy,
        context_uniqueness=context.uniqueness,
        context_idea_hint=context.idea_hint,
        title=draft.title,
        next_action=draft.next_action,
        estimated_minutes=draft.estimated_minutes,
        tags=list(draft.tags),
        reasoning=draft.reasoning,
        confidence=draft.confidence,
        model=model,
        source_features=list(source_features),
        shortlist_hash=shortlist_hash,
        decision=DECISION_PENDING,
        created_at=created_at or utcnow(),
    )
    db.add(suggestion)
    db.flush()
    return suggestion


def recent_suggestion_texts(db: Session, user_id: UUID, limit: int = RECENT_SUGGESTION_LIMIT) -> List[str]:
    """Titles and next actions of the most recent suggestions, newest first."""
    rows = (
        db.query(GeneratedSuggestion.title, GeneratedSuggestion.next_action)
        .filter(GeneratedSuggestion.user_id == user_id)
        .order_by(desc(GeneratedSuggestion.created_at))
        .limit(limit)
        .all()
    )
    texts: List[str] = []
    for title, next_action in rows:
        texts.extend(text for text in (title, next_action) if text)
    return texts


def find_pending(db: Session, suggestion_id: UUID, user_id: UUID) -> Optional[GeneratedSuggestion]:
    return (
        db.query(GeneratedSuggestion)
        .filter(
            GeneratedSuggestion.id == suggestion_id,
            GeneratedSuggestion.user_id == user_id,
            GeneratedSuggestion.decision == DECISION_PENDING,
        )
        .one_or_none()
    )


def set_decision(
    db: Session,
    user_id: UUID,
    suggestion_id: UUID,
    decision: str,
    created_task_id: Optional[UUID] = None,
) -> GeneratedSuggestion:
    """
    Flip a pending suggestion to ``decision``.

    The UPDATE is guarded on ``decision = 'pending'`` so two racing requests
    cannot both win. Raises 404 when the row is missing and 409 when it was
    already decided.
    """
    if decision not in (DECISION_ACCEPTED, DECISION_SKIPPED):
        raise ValueError(f"Unsupported decision: {decision}")

    values = {"decision": decision, "decided_at": utcnow()}
    if created_task_id is not None:
        values["created_task_id"] = created_task_id

    updated = (
        db.query(GeneratedSuggestion)
        .filter(
            GeneratedSuggestion.id == suggestion_id,
            GeneratedSuggestion.user_id == user_id,
            GeneratedSuggestion.decision == DECISION_PENDING,
        )
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        exists = (
            db.query(GeneratedSuggestion.id)
            .filter(GeneratedSuggestion.id == suggestion_id, GeneratedSuggestion.user_id == user_id)
            .first()
        )
        if exists is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Suggestion not found")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Suggestion already used")

    suggestion = db.get(GeneratedSuggestion, suggestion_id)
    db.refresh(suggestion)
    return suggestion


def confirm_suggestion(db: Session, principal: Principal, suggestion_id: UUID) -> Tuple[GeneratedSuggestion, Task]:
    """Accept a pending suggestion and add it to the user's tasks, exactly once."""
    try:
        suggestion = set_decision(db, principal.user_id, suggestion_id, DECISION_ACCEPTED)
        task = create_task(
            db,
            principal.user_id,
            title=suggestion.title,
            notes=suggestion.next_action,
            estimated_minutes=suggestion.estimated_minutes,
        )
        suggestion.created_task_id = task.id
        db.add(suggestion)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to persist suggestion decision",
        ) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(suggestion)
    db.refresh(task)
    logger.info("Suggestion %s accepted as task %s", suggestion.id, task.id)
    return suggestion, task


def skip_suggestion(db: Session, principal: Principal, suggestion_id: UUID) -> GeneratedSuggestion:
    try:
        suggestion = set_decision(db, principal.user_id, suggestion_id, DECISION_SKIPPED)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(suggestion)
    logger.info("Suggestion %s skipped", suggestion.id)
    return suggestion

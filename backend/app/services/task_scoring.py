"""Deterministic, explainable ranking of a user's open tasks."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.types import as_utc, utcnow
from app.services.task_service import list_open_tasks

Energy = Literal["low", "med", "high"]
Urgency = Literal["low", "med", "high"]
TimeFitBand = Literal["best", "good", "ok", "short", "over"]

NOTE_TRUNCATE = 150
SHORTLIST_SIZE = 30
# Used for banding only; energy rules look at the real estimate.
DEFAULT_ESTIMATE_MINUTES = 30

BAND_ORDER: Sequence[TimeFitBand] = ("best", "good", "ok", "short")

TIME_FIT_SCORES: Dict[str, int] = {
    "best": 35,
    "good": 20,
    "ok": 8,
    "short": 0,
    "over": -15,
}

DEFAULT_EXPLANATION = "Recommended based on your priorities and context."


@dataclass(frozen=True)
class RankingContext:
    time_minutes: int
    energy: Energy
    urgency: Urgency


@dataclass
class ScoredTask:
    id: UUID
    title: str
    notes: Optional[str]
    estimated_minutes: Optional[int]
    priority: Optional[int]
    urgency: Optional[int]
    deadline_at: Optional[datetime]
    score: int
    band: TimeFitBand


@dataclass
class DeterministicRecommendation:
    task_id: UUID
    task_title: str
    task_notes: Optional[str]
    explanation: str
    score: int
    band: TimeFitBand
    confidence: str = "med"


def get_time_fit_band(estimated_minutes: int, context_time_minutes: int) -> TimeFitBand:
    """Bucket estimate/available: >100% over, 70-100% best, 50-70% good, 30-50% ok, else short."""
    if context_time_minutes <= 0:
        return "ok"
    ratio = estimated_minutes / context_time_minutes
    if ratio > 1:
        return "over"
    if ratio >= 0.7:
        return "best"
    if ratio >= 0.5:
        return "good"
    if ratio >= 0.3:
        return "ok"
    return "short"


def _estimate(estimated_minutes: Optional[int]) -> int:
    return estimated_minutes if estimated_minutes is not None else DEFAULT_ESTIMATE_MINUTES


def is_time_reasonable(estimated_minutes: Optional[int], context_time_minutes: int) -> bool:
    estimate = _estimate(estimated_minutes)
    return context_time_minutes * 0.3 <= estimate <= context_time_minutes * 1.05


def hours_until(deadline: datetime, now: datetime) -> float:
    return (as_utc(deadline) - as_utc(now)).total_seconds() / 3600


def score_task(task: Any, context: RankingContext, now: Optional[datetime] = None) -> int:
    """Additive score: deadline proximity, priority, urgency, time fit and energy/urgency bonuses."""
    now = now or utcnow()
    score = 0

    if task.deadline_at is not None:
        hours_left = hours_until(task.deadline_at, now)
        if hours_left < 0:
            score += 50
        elif hours_left < 24:
            score += 40
        elif hours_left < 48:
            score += 30
        elif hours_left < 168:
            score += 20
        else:
            score += 10

    if task.priority:
        score += task.priority * 5
    if task.urgency:
        score += task.urgency * 5

    estimate = _estimate(task.estimated_minutes)
    score += TIME_FIT_SCORES[get_time_fit_band(estimate, context.time_minutes)]

    if context.energy == "low" and task.estimated_minutes:
        if task.estimated_minutes <= 30:
            score += 15
        elif task.estimated_minutes > 60:
            score -= 5
    elif context.energy == "high" and task.estimated_minutes and task.estimated_minutes >= 60:
        score += 10

    if context.urgency == "high" and task.urgency and task.urgency >= 4:
        score += 15

    return score


def rank_tasks(tasks: Sequence[Any], context: RankingContext, now: Optional[datetime] = None) -> List[ScoredTask]:
    """
    Score time-reasonable tasks (or every task when none fit) and sort by score.

    The sort is stable, so equal scores keep the input order.
    """
    if not tasks:
        return []
    now = now or utcnow()

    reasonable = [task for task in tasks if is_time_reasonable(task.estimated_minutes, context.time_minutes)]
    candidates = reasonable or list(tasks)

    scored = [
        ScoredTask(
            id=task.id,
            title=task.title,
            notes=task.notes,
            estimated_minutes=task.estimated_minutes,
            priority=task.priority,
            urgency=task.urgency,
            deadline_at=task.deadline_at,
            score=score_task(task, context, now),
            band=get_time_fit_band(_estimate(task.estimated_minutes), context.time_minutes),
        )
        for task in candidates
    ]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored


def _exclude(scored: List[ScoredTask], exclude_task_id: Optional[UUID]) -> List[ScoredTask]:
    if not exclude_task_id or len(scored) <= 1:
        return scored
    remaining = [item for item in scored if item.id != exclude_task_id]
    return remaining or scored


def build_shortlist(
    tasks: Sequence[Any],
    context: RankingContext,
    n: int = SHORTLIST_SIZE,
    exclude_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Top-n scored tasks in the compact shape sent to the model."""
    scored = _exclude(rank_tasks(tasks, context, now), exclude_task_id)
    return [_serialize_shortlist_entry(item) for item in scored[:n]]


def pick_best_by_time_band(scored: Sequence[ScoredTask]) -> Optional[ScoredTask]:
    """First task of the best non-empty band; band outranks raw score."""
    for band in BAND_ORDER:
        for item in scored:
            if item.band == band:
                return item
    return scored[0] if scored else None


def explain_pick(item: ScoredTask, context: RankingContext, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    reasons: List[str] = []
    if item.deadline_at is not None and hours_until(item.deadline_at, now) < 24:
        reasons.append("due soon")
    if item.priority and item.priority >= 4:
        reasons.append("high priority")
    if item.band in ("best", "good"):
        reasons.append("fits your available time")
    if context.energy == "low" and item.estimated_minutes and item.estimated_minutes <= 30:
        reasons.append("quick task for low energy")

    if not reasons:
        return DEFAULT_EXPLANATION
    return f"Recommended because it's {', '.join(reasons)}."


def pick_recommendation(
    tasks: Sequence[Any],
    context: RankingContext,
    exclude_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Optional[DeterministicRecommendation]:
    """Direct pick over an in-memory task list; None when there is nothing to suggest."""
    now = now or utcnow()
    scored = _exclude(rank_tasks(tasks, context, now), exclude_task_id)
    top = pick_best_by_time_band(scored)
    if top is None:
        return None
    return DeterministicRecommendation(
        task_id=top.id,
        task_title=top.title,
        task_notes=top.notes,
        explanation=explain_pick(top, context, now),
        score=top.score,
        band=top.band,
    )


def get_scored_shortlist(
    db: Session,
    user_id: UUID,
    context: RankingContext,
    n: int = SHORTLIST_SIZE,
    exclude_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    return build_shortlist(list_open_tasks(db, user_id), context, n, exclude_task_id, now)


def get_deterministic_recommendation(
    db: Session,
    user_id: UUID,
    context: RankingContext,
    exclude_task_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Optional[DeterministicRecommendation]:
    return pick_recommendation(list_open_tasks(db, user_id), context, exclude_task_id, now)


def _serialize_shortlist_entry(item: ScoredTask) -> Dict[str, Any]:
    notes = item.notes
    if notes:
        notes = notes[:NOTE_TRUNCATE] + ("…" if len(notes) > NOTE_TRUNCATE else "")
    deadline = as_utc(item.deadline_at)
    return {
        "id": str(item.id),
        "title": item.title,
        "notes": notes or None,
        "estimated_minutes": item.estimated_minutes,
        "priority": item.priority,
        "urgency": item.urgency,
        "deadline_at": deadline.isoformat() if deadline else None,
        "score": item.score,
    }

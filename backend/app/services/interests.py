"""User interests and the free-text summaries injected into model prompts."""
from __future__ import annotations

from datetime import timedelta
from typing import Iterable, List, Sequence
from uuid import UUID

from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from app.db.models.generated_suggestion import DECISION_ACCEPTED, DECISION_SKIPPED, GeneratedSuggestion
from app.db.models.recommendation_event import RecommendationEvent
from app.db.models.user import User
from app.db.models.user_interest import UserInterest
from app.db.types import utcnow
from app.services.task_service import list_open_tasks

INTEREST_PROMPT_LIMIT = 20
THEME_TASK_LIMIT = 50
THEME_PROMPT_LIMIT = 10
BEHAVIOR_WINDOW = 10

DEFAULT_INTEREST_GUIDANCE = (
    "Interests: not set. Use safe default themes: small project progress, quick life admin, learning. "
    "Suggest a broad, low-risk next action. If relevant, you may mention that adding interests in the app "
    "will improve suggestions."
)


def list_interest_labels(db: Session, user_id: UUID) -> List[str]:
    rows = (
        db.query(UserInterest.label)
        .filter(UserInterest.user_id == user_id)
        .order_by(asc(UserInterest.created_at), asc(UserInterest.id))
        .all()
    )
    return [row[0] for row in rows]


def normalize_labels(labels: Iterable[str]) -> List[str]:
    """Trim, drop blanks and de-duplicate case-insensitively keeping the first casing."""
    seen: dict[str, str] = {}
    for label in labels:
        cleaned = (label or "").strip()
        if cleaned and cleaned.lower() not in seen:
            seen[cleaned.lower()] = cleaned
    return list(seen.values())


def replace_interests(db: Session, user_id: UUID, labels: Iterable[str]) -> List[str]:
    """Replace the user's interests. The caller owns the commit."""
    unique = normalize_labels(labels)
    db.query(UserInterest).filter(UserInterest.user_id == user_id).delete(synchronize_session=False)
    base = utcnow()
    for index, label in enumerate(unique):
        # Distinct timestamps keep the submitted order when listing.
        db.add(UserInterest(user_id=user_id, label=label, created_at=base + timedelta(microseconds=index)))
    db.flush()
    return unique


def mark_onboarding_complete(db: Session, user: User) -> None:
    if user.onboarding_completed_at is None:
        user.onboarding_completed_at = utcnow()
        db.add(user)
        db.flush()


def build_interest_summary(labels: Sequence[str], task_themes: Sequence[str]) -> str:
    themes_text = ""
    if task_themes:
        themes_text = f" Recent task themes: {'; '.join(task_themes[:THEME_PROMPT_LIMIT])}."
    if labels:
        return f"interests: [{', '.join(labels[:INTEREST_PROMPT_LIMIT])}].{themes_text}"
    return f"{DEFAULT_INTEREST_GUIDANCE}{themes_text}"


def build_behavior_summary(event_decisions: Sequence[str], generated_decisions: Sequence[str]) -> str:
    """Counts only; no task titles leave the service in this summary."""
    return (
        f"Last {BEHAVIOR_WINDOW} (existing recs): "
        f"{_count(event_decisions, DECISION_ACCEPTED)} accepted, {_count(event_decisions, DECISION_SKIPPED)} skipped. "
        f"Last {BEHAVIOR_WINDOW} (generated): "
        f"{_count(generated_decisions, DECISION_ACCEPTED)} accepted, {_count(generated_decisions, DECISION_SKIPPED)} skipped. "
        "No task titles."
    )


def summarize_interests(db: Session, user_id: UUID) -> str:
    labels = list_interest_labels(db, user_id)
    themes = []
    for task in list_open_tasks(db, user_id, limit=THEME_TASK_LIMIT):
        themes.append(f"{task.title} ({task.goal.title})" if task.goal else task.title)
    return build_interest_summary(labels, themes)


def summarize_recent_behavior(db: Session, user_id: UUID) -> str:
    event_decisions = [
        row[0]
        for row in db.query(RecommendationEvent.decision)
        .filter(RecommendationEvent.user_id == user_id)
        .order_by(desc(RecommendationEvent.created_at))
        .limit(BEHAVIOR_WINDOW)
        .all()
    ]
    generated_decisions = [
        row[0]
        for row in db.query(GeneratedSuggestion.decision)
        .filter(GeneratedSuggestion.user_id == user_id)
        .order_by(desc(GeneratedSuggestion.created_at))
        .limit(BEHAVIOR_WINDOW)
        .all()
    ]
    return build_behavior_summary(event_decisions, generated_decisions)


def _count(decisions: Sequence[str], value: str) -> int:
    return sum(1 for decision in decisions if decision == value)

"""Goal store: the caller's long-running aims that tasks can hang off."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from app.db.models.goal import Goal
from app.db.types import utcnow


def list_active_goals(db: Session, user_id: UUID) -> List[Goal]:
    return (
        db.query(Goal)
        .filter(Goal.user_id == user_id, Goal.is_active.is_(True))
        .order_by(asc(Goal.created_at), asc(Goal.id))
        .all()
    )


def get_goal_for_user(db: Session, user_id: UUID, goal_id: UUID) -> Goal:
    """Return the user's goal or raise 404; other users' goals look missing."""
    goal = db.get(Goal, goal_id)
    if not goal or goal.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return goal


def create_goal(db: Session, user_id: UUID, *, title: str, description: Optional[str] = None) -> Goal:
    """Add an active goal. The caller owns the commit."""
    goal = Goal(user_id=user_id, title=title, description=description, is_active=True, created_at=utcnow())
    db.add(goal)
    db.flush()
    return goal


def update_goal(
    db: Session,
    user_id: UUID,
    goal_id: UUID,
    *,
    title: str,
    description: Optional[str] = None,
) -> Goal:
    goal = get_goal_for_user(db, user_id, goal_id)
    goal.title = title
    goal.description = description
    db.flush()
    return goal


def archive_goal(db: Session, user_id: UUID, goal_id: UUID) -> Goal:
    """Deactivate a goal. Its tasks keep their link; repeating is a no-op."""
    goal = get_goal_for_user(db, user_id, goal_id)
    if goal.is_active:
        goal.is_active = False
        db.flush()
    return goal

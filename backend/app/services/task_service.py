"""Task store: the queries the recommendation engine reads tasks through."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from app.db.models.goal import Goal
from app.db.models.task import TASK_STATUS_ARCHIVED, TASK_STATUS_TODO, Task
from app.db.types import utcnow

REFERENCE_TITLE_LIMIT = 100

UPDATABLE_TASK_FIELDS = (
    "title",
    "notes",
    "goal_id",
    "estimated_minutes",
    "estimated_input",
    "priority",
    "urgency",
    "deadline_at",
)


def list_open_tasks(db: Session, user_id: UUID, limit: Optional[int] = None) -> List[Task]:
    """Return the user's todo tasks in a stable order (oldest first)."""
    query = (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.status == TASK_STATUS_TODO)
        .order_by(asc(Task.created_at), asc(Task.id))
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_open_task_titles(db: Session, user_id: UUID, limit: int = REFERENCE_TITLE_LIMIT) -> List[str]:
    return [task.title for task in list_open_tasks(db, user_id, limit=limit) if task.title]


def create_task(
    db: Session,
    user_id: UUID,
    *,
    title: str,
    notes: Optional[str] = None,
    goal_id: Optional[UUID] = None,
    estimated_minutes: Optional[int] = None,
    estimated_input: Optional[str] = None,
    priority: Optional[int] = None,
    urgency: Optional[int] = None,
    deadline_at: Optional[datetime] = None,
) -> Task:
    """Add a todo task for the user. The caller owns the commit."""
    if goal_id is not None:
        goal = db.get(Goal, goal_id)
        if not goal or goal.user_id != user_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")

    task = Task(
        user_id=user_id,
        goal_id=goal_id,
        title=title,
        notes=notes,
        estimated_minutes=estimated_minutes,
        estimated_input=estimated_input,
        priority=priority,
        urgency=urgency,
        deadline_at=deadline_at,
        status=TASK_STATUS_TODO,
        created_at=utcnow(),
    )
    db.add(task)
    db.flush()
    return task


def archive_task(db: Session, user_id: UUID, task_id: UUID) -> Task:
    """Move a task to archived. Archiving is one-way; repeating it is a no-op."""
    task = db.get(Task, task_id)
    if not task or task.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.status != TASK_STATUS_ARCHIVED:
        task.status = TASK_STATUS_ARCHIVED
        db.add(task)
        db.flush()
    return task


def update_task(db: Session, user_id: UUID, task_id: UUID, changes: Dict[str, Any]) -> Task:
    """
    Apply edits to an open task. The caller owns the commit.

    ``changes`` holds only the fields to write; a present ``None`` clears the
    field. Archived tasks are read-only.
    """
    task = db.get(Task, task_id)
    if not task or task.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.status == TASK_STATUS_ARCHIVED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Task is archived")

    goal_id = changes.get("goal_id")
    if goal_id is not None:
        goal = db.get(Goal, goal_id)
        if not goal or goal.user_id != user_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")

    for name in UPDATABLE_TASK_FIELDS:
        if name in changes:
            setattr(task, name, changes[name])
    db.flush()
    return task

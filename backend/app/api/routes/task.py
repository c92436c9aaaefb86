"""Task API routes."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.schemas.task import (
    GoalBrief,
    TaskArchiveResponse,
    TaskCreateRequest,
    TaskListResponse,
    TaskOut,
    TaskUpdateRequest,
)
from app.core.auth import Principal, get_current_principal
from app.db.deps import get_db
from app.db.models.task import Task
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.task_service import archive_task, create_task, list_open_tasks, update_task
from app.services.time_parser import format_time_minutes
from app.services.user_service import get_or_create_user

router = APIRouter()

# Left unchanged when absent from the edit body.
OPTIONAL_TASK_EDITS = ("goal_id", "priority", "urgency", "deadline_at")


@router.get("/tasks", response_model=TaskListResponse, tags=["tasks"])
def list_tasks(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskListResponse:
    """List the caller's open tasks, oldest first."""
    tasks = list_open_tasks(db, principal.user_id)
    log_metric("task.list.count", len(tasks))
    return TaskListResponse(tasks=[_serialize_task(task) for task in tasks])


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def add_task(
    payload: TaskCreateRequest,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskOut:
    """Create a todo task; the estimate may be given as minutes or as text like "1h 30m"."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "has_goal": payload.goal_id is not None,
        "has_estimate": payload.estimated_minutes is not None,
    }

    try:
        with trace("task.create", metadata=metadata, user_id=str(principal.user_id), request_id=request_id):
            get_or_create_user(db, principal)
            task = create_task(
                db,
                principal.user_id,
                title=payload.title,
                notes=payload.notes,
                goal_id=payload.goal_id,
                estimated_minutes=payload.estimated_minutes,
                estimated_input=payload.estimated_input,
                priority=payload.priority,
                urgency=payload.urgency,
                deadline_at=payload.deadline_at,
            )
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    log_metric("task.create.success", 1)
    return _serialize_task(task)


@router.put("/tasks/{task_id}", response_model=TaskOut, tags=["tasks"])
def edit_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskOut:
    """Edit an open task. Title, notes and estimate are replaced as sent."""
    request_id = getattr(http_request.state, "request_id", None)
    changes: Dict[str, Any] = {
        "title": payload.title,
        "notes": payload.notes,
        "estimated_minutes": payload.estimated_minutes,
        "estimated_input": payload.estimated_input,
    }
    for name in OPTIONAL_TASK_EDITS:
        if name in payload.model_fields_set:
            changes[name] = getattr(payload, name)

    try:
        with trace(
            "task.update",
            metadata={"route": f"/tasks/{task_id}", "fields": sorted(changes)},
            user_id=str(principal.user_id),
            request_id=request_id,
        ):
            task = update_task(db, principal.user_id, task_id, changes)
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    log_metric("task.update.success", 1, metadata={"task_id": str(task_id)})
    return _serialize_task(task)


@router.delete("/tasks/{task_id}", response_model=TaskArchiveResponse, tags=["tasks"])
def delete_task(
    task_id: UUID,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskArchiveResponse:
    """Archive a task. Archived tasks never come back to the todo list."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "task.archive",
            metadata={"route": f"/tasks/{task_id}", "task_id": str(task_id)},
            user_id=str(principal.user_id),
            request_id=request_id,
        ):
            task = archive_task(db, principal.user_id, task_id)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.archive.success", 1, metadata={"task_id": str(task_id)})
    return TaskArchiveResponse(id=task.id, status=task.status, request_id=request_id or "")


def _serialize_task(task: Task) -> TaskOut:
    goal = GoalBrief(id=task.goal.id, title=task.goal.title) if task.goal else None
    label = format_time_minutes(task.estimated_minutes) if task.estimated_minutes is not None else None
    return TaskOut(
        id=task.id,
        title=task.title,
        notes=task.notes,
        goal=goal,
        estimated_minutes=task.estimated_minutes,
        estimated_input=task.estimated_input,
        estimated_label=label,
        priority=task.priority,
        urgency=task.urgency,
        deadline_at=task.deadline_at,
        status=task.status,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )

"""Goal API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.schemas.goal import GoalInput, GoalListResponse, GoalOut
from app.core.auth import Principal, get_current_principal
from app.db.deps import get_db
from app.db.models.goal import Goal
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.goal_service import archive_goal, create_goal, list_active_goals, update_goal
from app.services.user_service import get_or_create_user

router = APIRouter()


@router.get("/goals", response_model=GoalListResponse, tags=["goals"])
def list_goals(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GoalListResponse:
    """Active goals, oldest first."""
    goals = list_active_goals(db, principal.user_id)
    return GoalListResponse(goals=[_serialize_goal(goal) for goal in goals])


@router.post("/goals", response_model=GoalOut, status_code=status.HTTP_201_CREATED, tags=["goals"])
def add_goal(
    payload: GoalInput,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GoalOut:
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace("goal.create", metadata={"route": "/goals"}, user_id=str(principal.user_id), request_id=request_id):
            get_or_create_user(db, principal)
            goal = create_goal(db, principal.user_id, title=payload.title, description=payload.description)
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(goal)
    log_metric("goal.create.success", 1)
    return _serialize_goal(goal)


@router.put("/goals/{goal_id}", response_model=GoalOut, tags=["goals"])
def edit_goal(
    goal_id: UUID,
    payload: GoalInput,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GoalOut:
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "goal.update",
            metadata={"route": f"/goals/{goal_id}", "goal_id": str(goal_id)},
            user_id=str(principal.user_id),
            request_id=request_id,
        ):
            goal = update_goal(db, principal.user_id, goal_id, title=payload.title, description=payload.description)
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(goal)
    return _serialize_goal(goal)


@router.delete("/goals/{goal_id}", response_model=GoalOut, tags=["goals"])
def delete_goal(
    goal_id: UUID,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GoalOut:
    """Archive a goal. It leaves the list; tasks linked to it keep the link."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "goal.archive",
            metadata={"route": f"/goals/{goal_id}", "goal_id": str(goal_id)},
            user_id=str(principal.user_id),
            request_id=request_id,
        ):
            goal = archive_goal(db, principal.user_id, goal_id)
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(goal)
    log_metric("goal.archive.success", 1, metadata={"goal_id": str(goal_id)})
    return _serialize_goal(goal)


def _serialize_goal(goal: Goal) -> GoalOut:
    return GoalOut(
        id=goal.id,
        title=goal.title,
        description=goal.description,
        is_active=goal.is_active,
        created_at=goal.created_at,
    )

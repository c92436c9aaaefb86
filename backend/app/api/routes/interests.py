"""User interest API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.schemas.interests import InterestsResponse, InterestsUpdateRequest
from app.core.auth import Principal, get_current_principal
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.interests import list_interest_labels, mark_onboarding_complete, replace_interests
from app.services.user_service import get_or_create_user

router = APIRouter()


@router.get("/user/interests", response_model=InterestsResponse, tags=["interests"])
def get_interests(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> InterestsResponse:
    user = get_or_create_user(db, principal)
    return InterestsResponse(
        interests=list_interest_labels(db, principal.user_id),
        onboarding_completed=user.onboarding_completed_at is not None,
    )


@router.put("/user/interests", response_model=InterestsResponse, tags=["interests"])
def update_interests(
    payload: InterestsUpdateRequest,
    http_request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> InterestsResponse:
    """Replace the caller's interests and mark onboarding complete."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "interests.update",
            metadata={"route": "/user/interests", "count": len(payload.interests or [])},
            user_id=str(principal.user_id),
            request_id=request_id,
        ):
            user = get_or_create_user(db, principal)
            if payload.interests is not None:
                replace_interests(db, principal.user_id, payload.interests)
            mark_onboarding_complete(db, user)
            db.commit()
    except Exception:
        db.rollback()
        raise

    labels = list_interest_labels(db, principal.user_id)
    log_metric("interests.count", len(labels))
    return InterestsResponse(interests=labels, onboarding_completed=True)

"""Per-user daily quotas for model-backed recommendations.

Days are UTC calendar days. Generated suggestions are counted from their own
rows; the ranking path keeps an explicit counter that is bumped only after a
successful model call.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.generated_suggestion import GeneratedSuggestion
from app.db.models.llm_budget import LLMBudget
from app.db.models.user import User
from app.db.types import utcnow

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def day_start(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the day containing ``now``."""
    current = (now or utcnow()).astimezone(timezone.utc)
    return current.replace(hour=0, minute=0, second=0, microsecond=0)


def utc_day(now: Optional[datetime] = None) -> date:
    return day_start(now).date()


def count_generated_since(db: Session, user_id: UUID, since: datetime) -> int:
    total = (
        db.query(func.count(GeneratedSuggestion.id))
        .filter(GeneratedSuggestion.user_id == user_id, GeneratedSuggestion.created_at >= since)
        .scalar()
    )
    return int(total or 0)


def remaining_generated(db: Session, user_id: UUID, now: Optional[datetime] = None, cap: Optional[int] = None) -> int:
    limit = settings.generated_daily_cap if cap is None else cap
    used = count_generated_since(db, user_id, day_start(now))
    return max(0, limit - used)


def can_use_generated_suggestion(db: Session, user_id: UUID, now: Optional[datetime] = None, cap: Optional[int] = None) -> bool:
    return remaining_generated(db, user_id, now, cap) > 0


def lock_generated_quota(db: Session, user_id: UUID, now: Optional[datetime] = None) -> int:
    """
    Lock the user row for the rest of the transaction and return today's count.

    Concurrent generations for one user queue on the lock, so each one counts
    rows committed by the others before inserting its own. SQLite ignores
    ``FOR UPDATE``; its single writer gives the same ordering.
    """
    db.query(User.id).filter(User.id == user_id).with_for_update().one_or_none()
    return count_generated_since(db, user_id, day_start(now))


def ranking_usage(db: Session, user_id: UUID, now: Optional[datetime] = None) -> int:
    count = (
        db.query(LLMBudget.count)
        .filter(LLMBudget.user_id == user_id, LLMBudget.day == utc_day(now))
        .scalar()
    )
    return int(count or 0)


def remaining_ranking(db: Session, user_id: UUID, now: Optional[datetime] = None, cap: Optional[int] = None) -> int:
    limit = settings.ranking_daily_cap if cap is None else cap
    return max(0, limit - ranking_usage(db, user_id, now))


def can_use_ranking(db: Session, user_id: UUID, now: Optional[datetime] = None, cap: Optional[int] = None) -> bool:
    return remaining_ranking(db, user_id, now, cap) > 0


def increment_ranking_budget(db: Session, user_id: UUID, now: Optional[datetime] = None) -> int:
    """
    Atomically add one use for today and return the new count.

    Uses INSERT .. ON CONFLICT DO UPDATE so two concurrent requests can never
    both read the same count. The caller owns the commit.
    """
    day = utc_day(now)
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)

    if insert is None:
        # Row lock fallback for dialects without ON CONFLICT support.
        row = db.query(LLMBudget).filter_by(user_id=user_id, day=day).with_for_update().one_or_none()
        if row is None:
            row = LLMBudget(user_id=user_id, day=day, count=0)
            db.add(row)
        row.count = (row.count or 0) + 1
        db.flush()
        return int(row.count)

    stmt = insert(LLMBudget).values(user_id=user_id, day=day, count=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[LLMBudget.user_id, LLMBudget.day],
        set_={"count": LLMBudget.count + 1},
    )
    db.execute(stmt)
    count = ranking_usage(db, user_id, now)
    logger.debug("Ranking budget for %s on %s is now %s", user_id, day, count)
    return count

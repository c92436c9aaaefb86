"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base

TASK_STATUS_TODO = "todo"
TASK_STATUS_ARCHIVED = "archived"


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id_status", "user_id", "status"),
        Index("ix_tasks_goal_id", "goal_id"),
        CheckConstraint("priority IS NULL OR priority BETWEEN 1 AND 5", name="ck_tasks_priority_range"),
        CheckConstraint("urgency IS NULL OR urgency BETWEEN 1 AND 5", name="ck_tasks_urgency_range"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id = Column(
        UUID(as_uuid=True),
        ForeignKey("goals.id", ondelete="SET NULL"),
        nullable=True,
    )
    title = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    # Raw text the user typed for the estimate ("1h 30m", "2h"), kept for display.
    estimated_input = Column(String(length=50), nullable=True)
    priority = Column(Integer, nullable=True)
    urgency = Column(Integer, nullable=True)
    deadline_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(length=20), nullable=False, server_default=sa_text("'todo'"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    goal = relationship("Goal")

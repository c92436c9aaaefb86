"""RecommendationEvent ORM model (append-only history of next-task picks)."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


class RecommendationEvent(Base):
    __tablename__ = "recommendation_events"
    __table_args__ = (Index("ix_recommendation_events_user_id_created_at", "user_id", "created_at"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    context_time_minutes = Column(Integer, nullable=False)
    context_energy = Column(String(length=10), nullable=False)
    context_urgency = Column(String(length=10), nullable=False)
    source = Column(String(length=20), nullable=False)
    next_action_text = Column(Text, nullable=True)
    explanation = Column(Text, nullable=False)
    confidence = Column(String(length=10), nullable=False)
    score = Column(Integer, nullable=True)
    decision = Column(String(length=20), nullable=False, server_default=sa_text("'pending'"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    decided_at = Column(DateTime(timezone=True), nullable=True)

    task = relationship("Task")

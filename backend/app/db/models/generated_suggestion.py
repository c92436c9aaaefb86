"""GeneratedSuggestion ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat

DECISION_PENDING = "pending"
DECISION_ACCEPTED = "accepted"
DECISION_SKIPPED = "skipped"


class GeneratedSuggestion(Base):
    __tablename__ = "generated_suggestions"
    __table_args__ = (Index("ix_generated_suggestions_user_id_created_at", "user_id", "created_at"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    context_time_minutes = Column(Integer, nullable=False)
    context_energy = Column(String(length=10), nullable=False)
    context_uniqueness = Column(String(length=10), nullable=False)
    context_idea_hint = Column(Text, nullable=True)
    title = Column(Text, nullable=False)
    next_action = Column(String(length=120), nullable=False)
    estimated_minutes = Column(Integer, nullable=False)
    tags = Column(JSONBCompat, nullable=False, default=list)
    reasoning = Column(Text, nullable=False)
    confidence = Column(String(length=10), nullable=False)
    model = Column(String(length=100), nullable=False)
    source_features = Column(JSONBCompat, nullable=False, default=list)
    shortlist_hash = Column(String(length=64), nullable=False)
    decision = Column(String(length=20), nullable=False, server_default=sa_text("'pending'"))
    created_task_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    decided_at = Column(DateTime(timezone=True), nullable=True)

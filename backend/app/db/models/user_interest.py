"""UserInterest ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class UserInterest(Base):
    __tablename__ = "user_interests"
    __table_args__ = (Index("ix_user_interests_user_id", "user_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    label = Column(String(length=100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

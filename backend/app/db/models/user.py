"""Account row for each caller the auth gateway forwards."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    # Supplied by the gateway's X-User-Id header, never generated here.
    id = Column(UUID(as_uuid=True), primary_key=True)
    onboarding_completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

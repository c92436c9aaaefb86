"""LLMBudget ORM model: one counter row per user per UTC day."""
from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Integer, PrimaryKeyConstraint, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class LLMBudget(Base):
    __tablename__ = "llm_budgets"
    __table_args__ = (PrimaryKeyConstraint("user_id", "day", name="pk_llm_budgets"),)

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    day = Column(Date, nullable=False)
    count = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))

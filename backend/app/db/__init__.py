"""Declarative base plus every NextAction table, registered on import."""

from app.db.base import Base
from app.db.models import (  # noqa: F401  registers tables on Base.metadata
    GeneratedSuggestion,
    Goal,
    LLMBudget,
    RecommendationEvent,
    Task,
    User,
    UserInterest,
)

__all__ = ["Base"]

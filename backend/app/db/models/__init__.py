"""ORM models exposed for metadata discovery."""
from app.db.models.generated_suggestion import GeneratedSuggestion
from app.db.models.goal import Goal
from app.db.models.llm_budget import LLMBudget
from app.db.models.recommendation_event import RecommendationEvent
from app.db.models.task import Task
from app.db.models.user import User
from app.db.models.user_interest import UserInterest

__all__ = [
    "GeneratedSuggestion",
    "Goal",
    "LLMBudget",
    "RecommendationEvent",
    "Task",
    "User",
    "UserInterest",
]

"""Schemas for user interests."""
from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, StringConstraints

InterestLabel = Annotated[str, StringConstraints(max_length=100)]


class InterestsUpdateRequest(BaseModel):
    # Omitting interests only marks onboarding complete.
    interests: Optional[List[InterestLabel]] = Field(default=None, max_length=50)


class InterestsResponse(BaseModel):
    interests: List[str]
    onboarding_completed: bool

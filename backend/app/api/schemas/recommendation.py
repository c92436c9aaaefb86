"""Pydantic schemas for recommendation APIs."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.services.time_parser import MAX_MINUTES, parse_time_input

TIME_REQUIRED_MESSAGE = "Provide time_minutes or valid time_input (e.g. 45m, 2h, 1d)"


class TimeWindowRequest(BaseModel):
    """Available time as whole minutes or free text; free text wins when present."""

    time_minutes: Optional[int] = Field(default=None, gt=0, le=MAX_MINUTES)
    time_input: Optional[str] = Field(default=None, max_length=50)

    @model_validator(mode="after")
    def require_time(self) -> "TimeWindowRequest":
        if self.resolved_time_minutes is None:
            raise ValueError(TIME_REQUIRED_MESSAGE)
        return self

    @property
    def resolved_time_minutes(self) -> Optional[int]:
        if self.time_input is not None and self.time_input.strip():
            return parse_time_input(self.time_input)
        return self.time_minutes


class GenerateSuggestionRequest(TimeWindowRequest):
    energy: Literal["low", "med", "high"]
    uniqueness: Literal["familiar", "related", "novel"]
    idea_hint: Optional[str] = Field(default=None, max_length=500)

    @field_validator("idea_hint")
    @classmethod
    def blank_hint_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class GeneratedTaskOut(BaseModel):
    title: str
    next_action: str
    estimated_minutes: int
    tags: List[str] = Field(default_factory=list)
    reasoning: str
    confidence: str


class SuggestionMeta(BaseModel):
    source_features: List[str] = Field(default_factory=list)
    shortlist_hash: str


class FallbackOut(BaseModel):
    message: str
    deterministic_idea: str


class GenerateSuggestionResponse(BaseModel):
    status: Literal["accepted", "daily_limit", "fallback"]
    recommendation_id: Optional[UUID] = None
    generated_task: Optional[GeneratedTaskOut] = None
    model: Optional[str] = None
    meta: Optional[SuggestionMeta] = None
    daily_limit_reached: bool = False
    message: Optional[str] = None
    fallback: Optional[FallbackOut] = None
    remaining_today: int = 0
    request_id: str


class QuotaResponse(BaseModel):
    day: date
    generated_cap: int
    generated_remaining: int
    ranking_cap: int
    ranking_remaining: int


class NextTaskRequest(TimeWindowRequest):
    energy: Literal["low", "med", "high"]
    urgency: Literal["low", "med", "high"] = "med"
    exclude_task_id: Optional[UUID] = None


class TaskBrief(BaseModel):
    id: UUID
    title: str
    notes: Optional[str] = None


class RecommendationEventOut(BaseModel):
    id: UUID
    task: Optional[TaskBrief] = None
    context_time_minutes: int
    context_energy: str
    context_urgency: str
    source: str
    next_action_text: Optional[str] = None
    explanation: str
    confidence: str
    score: Optional[int] = None
    decision: str
    created_at: datetime
    decided_at: Optional[datetime] = None


class NextTaskResponse(BaseModel):
    status: Literal["recommended", "empty"]
    event: Optional[RecommendationEventOut] = None
    message: Optional[str] = None
    request_id: str


class RecommendationHistoryResponse(BaseModel):
    events: List[RecommendationEventOut]


class DecisionRequest(BaseModel):
    decision: Literal["accepted", "skipped"]


class SuggestionDecisionResponse(BaseModel):
    id: UUID
    decision: str
    decided_at: Optional[datetime] = None
    created_task_id: Optional[UUID] = None
    request_id: str

"""Schemas for task listing and creation."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.services.time_parser import MAX_MINUTES, parse_time_input_or_number


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=4000)
    goal_id: Optional[UUID] = None
    estimated_minutes: Optional[int] = Field(default=None, gt=0, le=MAX_MINUTES)
    estimated_input: Optional[str] = Field(default=None, max_length=50)
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    urgency: Optional[int] = Field(default=None, ge=1, le=5)
    deadline_at: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be empty")
        return cleaned

    @field_validator("estimated_input")
    @classmethod
    def blank_input_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def resolve_estimate(self) -> "TaskCreateRequest":
        if self.estimated_minutes is None and self.estimated_input is not None:
            minutes = parse_time_input_or_number(self.estimated_input)
            if minutes is None:
                raise ValueError("estimated_input must look like 45m, 2h or 1d")
            self.estimated_minutes = minutes
        return self


class TaskUpdateRequest(TaskCreateRequest):
    """Full edit of a task. Omitted goal, priority, urgency and deadline stay unchanged."""


class GoalBrief(BaseModel):
    id: UUID
    title: str


class TaskOut(BaseModel):
    id: UUID
    title: str
    notes: Optional[str] = None
    goal: Optional[GoalBrief] = None
    estimated_minutes: Optional[int] = None
    estimated_input: Optional[str] = None
    estimated_label: Optional[str] = None
    priority: Optional[int] = None
    urgency: Optional[int] = None
    deadline_at: Optional[datetime] = None
    status: str
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    tasks: List[TaskOut]


class TaskArchiveResponse(BaseModel):
    id: UUID
    status: str
    request_id: str

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ConversationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ENDED = "ENDED"


class ConversationStartRequest(BaseModel):
    email: EmailStr
    goal: str | None = Field(default=None, max_length=500)


class ConversationStatusUpdate(BaseModel):
    status: ConversationStatus


class MentoringPlanUpdate(BaseModel):
    goals: list[str] | None = None
    milestones: list[dict[str, Any]] | None = None
    notes: str | None = None


class ConversationResponse(BaseModel):
    id: UUID
    mentor_id: UUID
    mentee_id: UUID
    status: ConversationStatus
    goal: str | None = None
    mentoring_plan: dict[str, Any] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    ended_at: datetime | None = None
    last_message_at: datetime | None = None
    last_message_preview: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

import enum
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReminderType(str, enum.Enum):
    FOLLOW_UP = "follow-up"
    INTERVIEW = "interview"
    THANK_YOU = "thank-you"


REMINDER_TYPE_LABELS = {
    ReminderType.FOLLOW_UP: "Follow-up reminder",
    ReminderType.INTERVIEW: "Interview reminder",
    ReminderType.THANK_YOU: "Thank-you note reminder",
}


class ReminderStatus(str, enum.Enum):
    PENDING = "pending"
    TRIGGERED = "triggered"


class ReminderCreateRequest(BaseModel):
    conversation_id: UUID
    row_id: UUID | None = None
    type: ReminderType
    due_at: datetime


class ReminderUpdateRequest(BaseModel):
    type: ReminderType | None = None
    due_at: datetime | None = None


class ReminderResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    row_id: UUID | None = None
    type: ReminderType
    due_at: datetime
    created_by_user_id: UUID
    status: ReminderStatus
    triggered_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SweepResult(BaseModel):
    processed: int
    errors: int
    total_due: int = Field(alias="totalDue")

    model_config = ConfigDict(populate_by_name=True)

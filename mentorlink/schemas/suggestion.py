import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SuggestionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SuggestionCreateRequest(BaseModel):
    row_id: UUID
    field: str = Field(min_length=1, max_length=64)
    proposed_value: Any = None


class SuggestionResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    row_id: UUID
    field: str
    old_value: Any = None
    proposed_value: Any = None
    proposed_by_role: str
    status: SuggestionStatus
    resolved_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    id: uuid.UUID
    content: str
    conversation_id: uuid.UUID
    created_by_user_id: uuid.UUID
    sender_role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

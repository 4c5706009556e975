import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .board import Pagination


class NotificationType(str, enum.Enum):
    CHAT_MESSAGE = "chat_message"
    REMINDER_DUE = "reminder_due"
    INSIGHT_READY = "insight_ready"
    MENTOR_SUGGESTION = "mentor_suggestion"


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    conversation_id: UUID | None = None
    type: NotificationType
    title: str
    body: str
    link: str | None = None
    meta: dict[str, Any] | None = None
    read_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int = Field(alias="unreadCount")
    pagination: Pagination

    model_config = ConfigDict(populate_by_name=True)


class MarkAllReadResponse(BaseModel):
    updated: int

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ParticipantPresence(BaseModel):
    user_id: UUID
    last_seen_at: datetime | None = None
    last_active_at: datetime | None = None
    is_away: bool


class PresenceResponse(BaseModel):
    conversation_id: UUID
    participants: list[ParticipantPresence]

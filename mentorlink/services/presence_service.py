import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from mentorlink.core.clock import as_utc, utcnow
from mentorlink.core.config import settings
from mentorlink.models import Conversation
from mentorlink.repositories.presence_repository import PresenceRepository
from mentorlink.schemas.presence import ParticipantPresence

from .exceptions import DatabaseError

logger = logging.getLogger(__name__)


class PresenceService:
    """Heartbeat-style liveness per (conversation, user).

    A missing record or a stale heartbeat both read as away, so callers
    err on the side of notifying.
    """

    def __init__(
        self,
        presence_repository: PresenceRepository,
        threshold_seconds: int | None = None,
    ):
        self.presence_repo = presence_repository
        self.session = presence_repository.session
        self.threshold = timedelta(
            seconds=(
                threshold_seconds
                if threshold_seconds is not None
                else settings.PRESENCE_THRESHOLD_SECONDS
            )
        )

    async def touch(
        self, conversation_id: UUID, user_id: UUID, now: datetime | None = None
    ) -> None:
        try:
            await self.presence_repo.upsert_presence(
                conversation_id, user_id, now or utcnow()
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error touching presence: {e}", exc_info=True)
            raise DatabaseError("Failed to record presence due to a database error.")

    async def is_away(
        self, conversation_id: UUID, user_id: UUID, now: datetime | None = None
    ) -> bool:
        try:
            record = await self.presence_repo.get_presence(conversation_id, user_id)
        except SQLAlchemyError as e:
            logger.warning(
                f"Could not read presence for user {user_id} in {conversation_id}, "
                f"assuming away: {e}"
            )
            return True
        return self._is_stale(record.last_active_at if record else None, now)

    def _is_stale(self, last_active_at: datetime | None, now: datetime | None) -> bool:
        if last_active_at is None:
            return True
        return (now or utcnow()) - as_utc(last_active_at) >= self.threshold

    async def get_conversation_presence(
        self, conversation: Conversation, now: datetime | None = None
    ) -> list[ParticipantPresence]:
        records = {
            record.user_id: record
            for record in await self.presence_repo.list_presence(conversation.id)
        }
        participants = []
        for user_id in conversation.participant_ids():
            record = records.get(user_id)
            last_active_at = as_utc(record.last_active_at) if record else None
            participants.append(
                ParticipantPresence(
                    user_id=user_id,
                    last_seen_at=as_utc(record.last_seen_at) if record else None,
                    last_active_at=last_active_at,
                    is_away=self._is_stale(last_active_at, now),
                )
            )
        return participants

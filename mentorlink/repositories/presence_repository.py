import uuid
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.models import ConversationParticipant

from .base import BaseRepository


class PresenceRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def upsert_presence(
        self, conversation_id: UUID, user_id: UUID, now: datetime
    ) -> None:
        """Sets last_seen_at and last_active_at in one atomic statement."""
        stmt = self.insert_for_dialect(ConversationParticipant).values(
            id=uuid.uuid4(),
            conversation_id=conversation_id,
            user_id=user_id,
            last_seen_at=now,
            last_active_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["conversation_id", "user_id"],
            set_={"last_seen_at": now, "last_active_at": now, "updated_at": now},
        )
        await self.session.execute(stmt)

    async def get_presence(
        self, conversation_id: UUID, user_id: UUID
    ) -> ConversationParticipant | None:
        stmt = (
            select(ConversationParticipant)
            .filter(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_presence(
        self, conversation_id: UUID
    ) -> Sequence[ConversationParticipant]:
        stmt = (
            select(ConversationParticipant)
            .filter(ConversationParticipant.conversation_id == conversation_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.core.clock import utcnow
from mentorlink.models import Conversation
from mentorlink.schemas.conversation import ConversationStatus

from .base import BaseRepository


class ConversationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_conversation_by_id(
        self, conversation_id: UUID
    ) -> Conversation | None:
        """Retrieves a specific conversation by its ID."""
        stmt = select(Conversation).filter(Conversation.id == conversation_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_active_conversation_for_pair(
        self, mentor_id: UUID, mentee_id: UUID
    ) -> Conversation | None:
        stmt = select(Conversation).filter(
            Conversation.mentor_id == mentor_id,
            Conversation.mentee_id == mentee_id,
            Conversation.status == ConversationStatus.ACTIVE,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_conversations_for_user(
        self, user_id: UUID
    ) -> Sequence[Conversation]:
        """Lists conversations the user takes part in, most recently updated first."""
        stmt = (
            select(Conversation)
            .filter(
                or_(Conversation.mentor_id == user_id, Conversation.mentee_id == user_id)
            )
            .order_by(Conversation.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create_conversation(
        self, mentor_id: UUID, mentee_id: UUID, goal: str | None = None
    ) -> Conversation:
        conversation = Conversation(
            mentor_id=mentor_id,
            mentee_id=mentee_id,
            goal=goal,
            status=ConversationStatus.ACTIVE,
            started_at=utcnow(),
        )
        self.session.add(conversation)
        await self.session.flush()
        await self.session.refresh(conversation)
        return conversation

    async def update_status(
        self, conversation: Conversation, new_status: ConversationStatus
    ) -> Conversation:
        now = utcnow()
        conversation.status = new_status
        if new_status == ConversationStatus.COMPLETED:
            conversation.completed_at = now
        elif new_status in (ConversationStatus.ENDED, ConversationStatus.CANCELLED):
            conversation.ended_at = now
        self.session.add(conversation)
        await self.session.flush()
        await self.session.refresh(conversation)
        return conversation

    async def set_mentoring_plan(
        self, conversation: Conversation, plan: dict[str, Any]
    ) -> Conversation:
        conversation.mentoring_plan = plan
        self.session.add(conversation)
        await self.session.flush()
        await self.session.refresh(conversation)
        return conversation

    async def record_message(
        self, conversation: Conversation, sent_at: datetime, preview: str
    ) -> None:
        conversation.last_message_at = sent_at
        conversation.last_message_preview = preview
        self.session.add(conversation)
        await self.session.flush()

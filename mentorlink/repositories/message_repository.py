from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.models import Message

from .base import BaseRepository


class MessageRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create_message(
        self,
        content: str,
        conversation_id: UUID,
        user_id: UUID,
        sender_role: str,
    ) -> Message:
        """Creates a new message record."""
        new_message = Message(
            content=content,
            conversation_id=conversation_id,
            created_by_user_id=user_id,
            sender_role=sender_role,
        )
        self.session.add(new_message)
        await self.session.flush()
        await self.session.refresh(new_message)
        return new_message

    async def list_messages(
        self, conversation_id: UUID, limit: int = 200
    ) -> Sequence[Message]:
        """Lists messages of a conversation, oldest first."""
        stmt = (
            select(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

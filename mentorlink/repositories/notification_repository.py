from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.core.clock import utcnow
from mentorlink.models import Notification
from mentorlink.schemas.notification import NotificationType

from .base import BaseRepository


class NotificationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create_notification(
        self,
        user_id: UUID,
        conversation_id: UUID | None,
        type: NotificationType,
        title: str,
        body: str,
        link: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            conversation_id=conversation_id,
            type=type,
            title=title,
            body=body,
            link=link,
            meta=meta,
        )
        self.session.add(notification)
        await self.session.flush()
        await self.session.refresh(notification)
        return notification

    def _filtered(
        self, stmt, user_id: UUID, conversation_id: UUID | None, unread_only: bool
    ):
        stmt = stmt.where(Notification.user_id == user_id)
        if conversation_id is not None:
            stmt = stmt.where(Notification.conversation_id == conversation_id)
        if unread_only:
            stmt = stmt.where(Notification.read_at.is_(None))
        return stmt

    async def list_notifications(
        self,
        user_id: UUID,
        *,
        conversation_id: UUID | None = None,
        unread_only: bool = False,
        offset: int = 0,
        limit: int = 30,
    ) -> tuple[Sequence[Notification], int]:
        total = await self.session.scalar(
            self._filtered(
                select(func.count()).select_from(Notification),
                user_id,
                conversation_id,
                unread_only,
            )
        )
        stmt = (
            self._filtered(select(Notification), user_id, conversation_id, unread_only)
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all(), total or 0

    async def count_unread(self, user_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        )
        return total or 0

    async def get_for_recipient(
        self, notification_id: UUID, user_id: UUID
    ) -> Notification | None:
        """Matches on id and recipient together so others' ids read as missing."""
        stmt = (
            select(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def mark_read(self, notification: Notification) -> Notification:
        if notification.read_at is None:
            notification.read_at = utcnow()
            self.session.add(notification)
            await self.session.flush()
        return notification

    async def mark_all_read(
        self, user_id: UUID, conversation_id: UUID | None = None
    ) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if conversation_id is not None:
            stmt = stmt.where(Notification.conversation_id == conversation_id)
        result = await self.session.execute(stmt)
        return result.rowcount

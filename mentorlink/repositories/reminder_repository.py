from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.core.clock import utcnow
from mentorlink.models import Reminder
from mentorlink.schemas.reminder import ReminderStatus, ReminderType

from .base import BaseRepository


class ReminderRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create_reminder(
        self,
        conversation_id: UUID,
        row_id: UUID | None,
        type: ReminderType,
        due_at: datetime,
        user_id: UUID,
    ) -> Reminder:
        reminder = Reminder(
            conversation_id=conversation_id,
            row_id=row_id,
            type=type,
            due_at=due_at,
            created_by_user_id=user_id,
            status=ReminderStatus.PENDING,
        )
        self.session.add(reminder)
        await self.session.flush()
        await self.session.refresh(reminder)
        return reminder

    async def get_reminder_by_id(self, reminder_id: UUID) -> Reminder | None:
        stmt = (
            select(Reminder)
            .filter(Reminder.id == reminder_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_reminders(
        self,
        conversation_id: UUID,
        *,
        row_id: UUID | None = None,
        status: ReminderStatus | None = None,
    ) -> Sequence[Reminder]:
        stmt = select(Reminder).filter(Reminder.conversation_id == conversation_id)
        if row_id is not None:
            stmt = stmt.filter(Reminder.row_id == row_id)
        if status is not None:
            stmt = stmt.filter(Reminder.status == status)
        stmt = stmt.order_by(Reminder.due_at.asc())
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_due_pending(self, now: datetime) -> Sequence[Reminder]:
        stmt = (
            select(Reminder)
            .filter(Reminder.status == ReminderStatus.PENDING, Reminder.due_at <= now)
            .order_by(Reminder.due_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def claim(self, reminder_id: UUID, now: datetime) -> bool:
        """pending -> triggered as a single conditional UPDATE.

        Only one caller can see rowcount 1 for a given reminder.
        """
        stmt = (
            update(Reminder)
            .where(Reminder.id == reminder_id, Reminder.status == ReminderStatus.PENDING)
            .values(status=ReminderStatus.TRIGGERED, triggered_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_reminder(
        self,
        reminder: Reminder,
        *,
        type: ReminderType | None = None,
        due_at: datetime | None = None,
    ) -> Reminder:
        if type is not None:
            reminder.type = type
        if due_at is not None:
            reminder.due_at = due_at
        reminder.updated_at = utcnow()
        self.session.add(reminder)
        await self.session.flush()
        await self.session.refresh(reminder)
        return reminder

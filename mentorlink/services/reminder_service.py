import logging
from datetime import datetime
from typing import NamedTuple, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from mentorlink.core.clock import as_utc, utcnow
from mentorlink.models import Reminder, User
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.repositories.board_repository import BoardRepository
from mentorlink.repositories.conversation_repository import ConversationRepository
from mentorlink.repositories.reminder_repository import ReminderRepository
from mentorlink.schemas.notification import NotificationType
from mentorlink.schemas.reminder import (
    REMINDER_TYPE_LABELS,
    ReminderResponse,
    ReminderStatus,
    ReminderType,
    SweepResult,
)

from .conversation_service import ConversationService
from .exceptions import (
    ConflictError,
    DatabaseError,
    ReminderNotFoundError,
    RowNotFoundError,
    ServiceError,
)
from .ics_export import build_reminder_ics
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class DueReminder(NamedTuple):
    id: UUID
    conversation_id: UUID
    row_id: UUID | None
    type: ReminderType


class ReminderService:
    def __init__(
        self,
        reminder_repository: ReminderRepository,
        conversation_service: ConversationService,
        board_repository: BoardRepository,
        notification_service: NotificationService,
        event_bus: EventBus,
    ):
        self.reminder_repo = reminder_repository
        self.conv_service = conversation_service
        self.conv_repo: ConversationRepository = conversation_service.conv_repo
        self.board_repo = board_repository
        self.notifications = notification_service
        self.bus = event_bus
        self.session = reminder_repository.session

    async def create_reminder(
        self,
        user: User,
        conversation_id: UUID,
        type: ReminderType,
        due_at: datetime,
        row_id: UUID | None = None,
    ) -> Reminder:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        if row_id is not None:
            row = await self.board_repo.get_row(row_id)
            if row is None or row.conversation_id != conversation.id:
                raise RowNotFoundError()

        try:
            reminder = await self.reminder_repo.create_reminder(
                conversation_id=conversation.id,
                row_id=row_id,
                type=type,
                due_at=as_utc(due_at),
                user_id=user.id,
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating reminder: {e}", exc_info=True)
            raise DatabaseError("Failed to create reminder due to a database error.")

        self.bus.publish(
            CollaborationEvent.REMINDER_CREATED,
            {
                "conversationId": str(conversation.id),
                "reminderId": str(reminder.id),
                "applicationId": str(row_id) if row_id else None,
                "reminder": ReminderResponse.model_validate(reminder).model_dump(
                    mode="json"
                ),
            },
        )
        return reminder

    async def get_reminder_for_user(self, reminder_id: UUID, user: User) -> Reminder:
        reminder = await self.reminder_repo.get_reminder_by_id(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError()
        # Non-participants see the same not-found as a missing reminder
        try:
            await self.conv_service.get_conversation_for_user(
                reminder.conversation_id, user
            )
        except ServiceError:
            raise ReminderNotFoundError()
        return reminder

    async def list_reminders(
        self,
        conversation_id: UUID,
        user: User,
        *,
        row_id: UUID | None = None,
        status: ReminderStatus | None = None,
    ) -> Sequence[Reminder]:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        return await self.reminder_repo.list_reminders(
            conversation.id, row_id=row_id, status=status
        )

    async def update_reminder(
        self,
        reminder_id: UUID,
        user: User,
        *,
        type: ReminderType | None = None,
        due_at: datetime | None = None,
    ) -> Reminder:
        """Reschedules or retypes a reminder that has not fired yet."""
        reminder = await self.get_reminder_for_user(reminder_id, user)
        if reminder.status != ReminderStatus.PENDING:
            raise ConflictError("Triggered reminders cannot be changed.")
        try:
            reminder = await self.reminder_repo.update_reminder(
                reminder, type=type, due_at=as_utc(due_at)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error updating reminder: {e}", exc_info=True)
            raise DatabaseError("Failed to update reminder due to a database error.")
        return reminder

    async def export_calendar(self, reminder_id: UUID, user: User) -> tuple[str, str]:
        """Returns (filename, .ics body) for a reminder."""
        reminder = await self.get_reminder_for_user(reminder_id, user)
        return f"reminder-{reminder.id}.ics", build_reminder_ics(reminder)

    async def run_due_reminder_sweep(self, now: datetime | None = None) -> SweepResult:
        """Claims every due pending reminder once and notifies both participants.

        Each claim is committed before anything else happens. A reminder
        that fails after its claim stays triggered and is not retried.
        """
        now = now or utcnow()
        # Plain values: a rollback below expires ORM instances
        due = [
            DueReminder(r.id, r.conversation_id, r.row_id, ReminderType(r.type))
            for r in await self.reminder_repo.list_due_pending(now)
        ]
        processed = 0
        errors = 0

        for reminder in due:
            try:
                claimed = await self.reminder_repo.claim(reminder.id, now)
                await self.session.commit()
                if not claimed:
                    logger.info(f"Reminder {reminder.id} already claimed; skipping")
                    continue

                conversation = await self.conv_repo.get_conversation_by_id(
                    reminder.conversation_id
                )
                if conversation is None:
                    logger.error(
                        f"Reminder {reminder.id}: conversation "
                        f"{reminder.conversation_id} not found"
                    )
                    errors += 1
                    continue

                await self._notify_participants(
                    reminder, conversation.id, conversation.participant_ids()
                )
                processed += 1
            except Exception as e:
                await self.session.rollback()
                logger.error(
                    f"Error processing reminder {reminder.id}: {e}", exc_info=True
                )
                errors += 1

        if due:
            logger.info(
                f"Reminder sweep: {processed} processed, {errors} errors, "
                f"{len(due)} due"
            )
        return SweepResult(processed=processed, errors=errors, total_due=len(due))

    async def _notify_participants(
        self, reminder: DueReminder, conversation_id: UUID, recipient_ids: tuple
    ) -> None:
        title = REMINDER_TYPE_LABELS.get(reminder.type, "Reminder")
        body = f"Reminder: {title} is due now."
        link = (
            f"/mentor-communication/{conversation_id}/applications"
            if reminder.row_id
            else f"/mentor-communication/{conversation_id}"
        )
        meta = {
            "reminderId": str(reminder.id),
            "reminderType": reminder.type.value,
            "applicationId": str(reminder.row_id) if reminder.row_id else None,
        }
        for recipient_id in recipient_ids:
            try:
                await self.notifications.notify(
                    recipient_id=recipient_id,
                    conversation_id=conversation_id,
                    type=NotificationType.REMINDER_DUE,
                    title=title,
                    body=body,
                    link=link,
                    meta=meta,
                )
            except ServiceError as e:
                logger.error(
                    f"Reminder {reminder.id}: failed to notify {recipient_id}: {e}"
                )

import logging
import secrets
from datetime import datetime
from typing import Sequence
from uuid import UUID

from mentorlink.core.config import settings
from mentorlink.logic.common import service_handler
from mentorlink.models import Reminder, User
from mentorlink.schemas.reminder import (
    ReminderCreateRequest,
    ReminderStatus,
    ReminderUpdateRequest,
    SweepResult,
)
from mentorlink.services.exceptions import NotAuthorizedError
from mentorlink.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


@service_handler("creating a reminder")
async def handle_create_reminder(
    request_data: ReminderCreateRequest,
    user: User,
    reminder_service: ReminderService,
) -> Reminder:
    return await reminder_service.create_reminder(
        user,
        request_data.conversation_id,
        request_data.type,
        request_data.due_at,
        row_id=request_data.row_id,
    )


@service_handler("listing reminders")
async def handle_list_reminders(
    conversation_id: UUID,
    row_id: UUID | None,
    status: ReminderStatus | None,
    user: User,
    reminder_service: ReminderService,
) -> Sequence[Reminder]:
    return await reminder_service.list_reminders(
        conversation_id, user, row_id=row_id, status=status
    )


@service_handler("updating a reminder")
async def handle_update_reminder(
    reminder_id: UUID,
    request_data: ReminderUpdateRequest,
    user: User,
    reminder_service: ReminderService,
) -> Reminder:
    return await reminder_service.update_reminder(
        reminder_id, user, type=request_data.type, due_at=request_data.due_at
    )


@service_handler("exporting a reminder calendar")
async def handle_export_calendar(
    reminder_id: UUID, user: User, reminder_service: ReminderService
) -> tuple[str, str]:
    return await reminder_service.export_calendar(reminder_id, user)


def check_sweep_token(provided: str | None) -> None:
    """No-op when no token is configured."""
    expected = settings.REMINDER_SWEEP_TOKEN
    if not expected:
        return
    if provided is None or not secrets.compare_digest(provided, expected):
        raise NotAuthorizedError("Invalid sweep token.")


@service_handler("running the reminder sweep")
async def handle_check_due(
    token: str | None,
    reminder_service: ReminderService,
    now: datetime | None = None,
) -> SweepResult:
    check_sweep_token(token)
    result = await reminder_service.run_due_reminder_sweep(now)
    logger.info(
        f"Handler: sweep processed {result.processed} of {result.total_due} due "
        f"reminder(s), {result.errors} error(s)"
    )
    return result

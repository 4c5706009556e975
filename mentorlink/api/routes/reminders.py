from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.core.config import settings
from mentorlink.logic.reminder_processing import (
    handle_check_due,
    handle_create_reminder,
    handle_export_calendar,
    handle_list_reminders,
    handle_update_reminder,
)
from mentorlink.models import User
from mentorlink.schemas.reminder import (
    ReminderCreateRequest,
    ReminderResponse,
    ReminderStatus,
    ReminderUpdateRequest,
    SweepResult,
)
from mentorlink.services.dependencies import get_reminder_service
from mentorlink.services.reminder_service import ReminderService

reminders_router_instance = APIRouter(prefix="/reminders")
router = BaseRouter(router=reminders_router_instance, default_tags=["reminders"])


@router.get("/check-due")
async def check_due_liveness(request: Request):
    """Lets an external cron confirm the sweep endpoint is reachable."""
    scheduler = getattr(request.app.state, "reminder_scheduler", None)
    return {
        "status": "ok",
        "inProcessScheduler": scheduler is not None,
        "intervalSeconds": settings.REMINDER_SWEEP_INTERVAL_SECONDS,
    }


@router.post("/check-due", response_model=SweepResult)
async def check_due(
    x_sweep_token: str | None = Header(default=None, alias="X-Sweep-Token"),
    reminder_service: ReminderService = Depends(get_reminder_service),
):
    """Claims and fires every due reminder. Safe to call repeatedly."""
    return await handle_check_due(
        token=x_sweep_token, reminder_service=reminder_service
    )


@router.get("", response_model=List[ReminderResponse])
async def list_reminders(
    conversation_id: UUID = Query(...),
    row_id: UUID | None = Query(None),
    status: ReminderStatus | None = Query(None),
    user: User = Depends(current_active_user),
    reminder_service: ReminderService = Depends(get_reminder_service),
):
    return await handle_list_reminders(
        conversation_id=conversation_id,
        row_id=row_id,
        status=status,
        user=user,
        reminder_service=reminder_service,
    )


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    request_data: ReminderCreateRequest,
    user: User = Depends(current_active_user),
    reminder_service: ReminderService = Depends(get_reminder_service),
):
    return await handle_create_reminder(
        request_data=request_data, user=user, reminder_service=reminder_service
    )


@router.patch("/{reminder_id}", response_model=ReminderResponse)
async def update_reminder(
    reminder_id: UUID,
    request_data: ReminderUpdateRequest,
    user: User = Depends(current_active_user),
    reminder_service: ReminderService = Depends(get_reminder_service),
):
    return await handle_update_reminder(
        reminder_id=reminder_id,
        request_data=request_data,
        user=user,
        reminder_service=reminder_service,
    )


@router.get("/{reminder_id}/calendar")
async def export_calendar(
    reminder_id: UUID,
    user: User = Depends(current_active_user),
    reminder_service: ReminderService = Depends(get_reminder_service),
):
    filename, body = await handle_export_calendar(
        reminder_id=reminder_id, user=user, reminder_service=reminder_service
    )
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.logic.notification_processing import (
    handle_list_notifications,
    handle_mark_all_read,
    handle_mark_read,
)
from mentorlink.models import User
from mentorlink.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from mentorlink.services.dependencies import get_notification_service
from mentorlink.services.notification_service import NotificationService

notifications_router_instance = APIRouter(prefix="/notifications")
router = BaseRouter(
    router=notifications_router_instance, default_tags=["notifications"]
)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    conversation_id: UUID | None = Query(None),
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    user: User = Depends(current_active_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """The current user's notifications, newest first, plus their unread count."""
    return await handle_list_notifications(
        conversation_id=conversation_id,
        unread_only=unread_only,
        page=page,
        limit=limit,
        user=user,
        notification_service=notification_service,
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    conversation_id: UUID | None = Query(None),
    user: User = Depends(current_active_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return await handle_mark_all_read(
        conversation_id=conversation_id,
        user=user,
        notification_service=notification_service,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    user: User = Depends(current_active_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return await handle_mark_read(
        notification_id=notification_id,
        user=user,
        notification_service=notification_service,
    )

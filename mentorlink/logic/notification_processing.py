from uuid import UUID

from mentorlink.logic.common import service_handler
from mentorlink.models import Notification, User
from mentorlink.schemas.board import Pagination
from mentorlink.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from mentorlink.services.notification_service import MAX_PAGE_SIZE, NotificationService


@service_handler("listing notifications")
async def handle_list_notifications(
    conversation_id: UUID | None,
    unread_only: bool,
    page: int,
    limit: int,
    user: User,
    notification_service: NotificationService,
) -> NotificationListResponse:
    notifications, total, unread = await notification_service.list_notifications(
        user.id,
        conversation_id=conversation_id,
        unread_only=unread_only,
        page=page,
        limit=limit,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
        pagination=Pagination(
            page=max(1, page), limit=max(1, min(limit, MAX_PAGE_SIZE)), total=total
        ),
    )


@service_handler("marking a notification read")
async def handle_mark_read(
    notification_id: UUID, user: User, notification_service: NotificationService
) -> Notification:
    return await notification_service.mark_read(notification_id, user.id)


@service_handler("marking notifications read")
async def handle_mark_all_read(
    conversation_id: UUID | None,
    user: User,
    notification_service: NotificationService,
) -> MarkAllReadResponse:
    updated = await notification_service.mark_all_read(
        user.id, conversation_id=conversation_id
    )
    return MarkAllReadResponse(updated=updated)

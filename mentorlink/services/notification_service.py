import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from mentorlink.models import Notification
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.repositories.notification_repository import NotificationRepository
from mentorlink.schemas.notification import NotificationResponse, NotificationType

from .exceptions import DatabaseError, NotificationNotFoundError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class NotificationService:
    def __init__(
        self, notification_repository: NotificationRepository, event_bus: EventBus
    ):
        self.notification_repo = notification_repository
        self.bus = event_bus
        self.session = notification_repository.session

    async def notify(
        self,
        recipient_id: UUID,
        conversation_id: UUID | None,
        type: NotificationType,
        title: str,
        body: str,
        link: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Notification:
        """Persists a notification, then publishes it for live delivery.

        Whether the recipient should be notified at all is the caller's call.
        """
        try:
            notification = await self.notification_repo.create_notification(
                user_id=recipient_id,
                conversation_id=conversation_id,
                type=type,
                title=title,
                body=body,
                link=link,
                meta=meta or {},
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating notification: {e}", exc_info=True)
            raise DatabaseError("Failed to create notification due to a database error.")

        self.bus.publish(
            CollaborationEvent.NOTIFICATION_NEW,
            {
                "conversationId": str(conversation_id) if conversation_id else None,
                "notificationId": str(notification.id),
                "userId": str(recipient_id),
                "notification": NotificationResponse.model_validate(
                    notification
                ).model_dump(mode="json"),
            },
        )
        return notification

    async def list_notifications(
        self,
        user_id: UUID,
        *,
        conversation_id: UUID | None = None,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 30,
    ) -> tuple[Sequence[Notification], int, int]:
        """Returns (page of notifications, total matching, unread count)."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(1, page)
        notifications, total = await self.notification_repo.list_notifications(
            user_id,
            conversation_id=conversation_id,
            unread_only=unread_only,
            offset=(page - 1) * limit,
            limit=limit,
        )
        unread = await self.notification_repo.count_unread(user_id)
        return notifications, total, unread

    async def unread_count(self, user_id: UUID) -> int:
        return await self.notification_repo.count_unread(user_id)

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.notification_repo.get_for_recipient(
            notification_id, user_id
        )
        if notification is None:
            raise NotificationNotFoundError()
        try:
            notification = await self.notification_repo.mark_read(notification)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error marking notification read: {e}", exc_info=True)
            raise DatabaseError("Failed to update notification due to a database error.")
        return notification

    async def mark_all_read(
        self, user_id: UUID, conversation_id: UUID | None = None
    ) -> int:
        try:
            updated = await self.notification_repo.mark_all_read(
                user_id, conversation_id
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error marking notifications read: {e}", exc_info=True)
            raise DatabaseError("Failed to update notifications due to a database error.")
        return updated

    async def mark_conversation_read(self, conversation_id: UUID, user_id: UUID) -> int:
        return await self.mark_all_read(user_id, conversation_id=conversation_id)

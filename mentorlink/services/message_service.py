import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from mentorlink.models import Message, User
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.repositories.message_repository import MessageRepository
from mentorlink.schemas.conversation import ConversationStatus
from mentorlink.schemas.message import MessageResponse
from mentorlink.schemas.notification import NotificationType

from .conversation_service import ConversationService
from .exceptions import BusinessRuleError, DatabaseError, ServiceError
from .notification_service import NotificationService
from .presence_service import PresenceService

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200
NOTIFICATION_BODY_LENGTH = 140


class MessageService:
    def __init__(
        self,
        message_repository: MessageRepository,
        conversation_service: ConversationService,
        presence_service: PresenceService,
        notification_service: NotificationService,
        event_bus: EventBus,
    ):
        self.msg_repo = message_repository
        self.conv_service = conversation_service
        self.presence = presence_service
        self.notifications = notification_service
        self.bus = event_bus
        self.session = message_repository.session

    async def list_messages(self, conversation_id: UUID, user: User) -> Sequence[Message]:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        return await self.msg_repo.list_messages(conversation.id)

    async def create_message(
        self, conversation_id: UUID, user: User, content: str
    ) -> Message:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        if conversation.status != ConversationStatus.ACTIVE:
            raise BusinessRuleError("Conversation is no longer active.")

        content = content.strip()
        if not content:
            raise BusinessRuleError("Message content cannot be empty.")

        sender_role = conversation.role_of(user.id)
        try:
            message = await self.msg_repo.create_message(
                content=content,
                conversation_id=conversation.id,
                user_id=user.id,
                sender_role=sender_role,
            )
            await self.conv_service.conv_repo.record_message(
                conversation, message.created_at, content[:PREVIEW_LENGTH]
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating message: {e}", exc_info=True)
            raise DatabaseError("Failed to create message due to a database error.")

        self.bus.publish(
            CollaborationEvent.MESSAGE_NEW,
            {
                "conversationId": str(conversation.id),
                "message": MessageResponse.model_validate(message).model_dump(
                    mode="json"
                ),
            },
        )

        recipient_id = conversation.other_participant(user.id)
        if await self.presence.is_away(conversation.id, recipient_id):
            try:
                await self.notifications.notify(
                    recipient_id=recipient_id,
                    conversation_id=conversation.id,
                    type=NotificationType.CHAT_MESSAGE,
                    title=f"New message from {user.username}",
                    body=content[:NOTIFICATION_BODY_LENGTH],
                    link=f"/mentor-communication/{conversation.id}",
                    meta={"messageId": str(message.id), "senderRole": sender_role},
                )
            except ServiceError as e:
                logger.warning(
                    f"Message {message.id} sent but notifying {recipient_id} failed: {e}"
                )
        return message

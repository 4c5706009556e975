import logging
from uuid import UUID

from mentorlink.logic.common import service_handler
from mentorlink.models import User
from mentorlink.schemas.presence import PresenceResponse
from mentorlink.services.conversation_service import ConversationService
from mentorlink.services.notification_service import NotificationService
from mentorlink.services.presence_service import PresenceService

logger = logging.getLogger(__name__)


@service_handler("recording a heartbeat")
async def handle_heartbeat(
    conversation_id: UUID,
    user: User,
    conv_service: ConversationService,
    presence_service: PresenceService,
) -> dict[str, bool]:
    conversation = await conv_service.get_conversation_for_user(conversation_id, user)
    await presence_service.touch(conversation.id, user.id)
    return {"ok": True}


@service_handler("marking a conversation seen")
async def handle_mark_seen(
    conversation_id: UUID,
    user: User,
    conv_service: ConversationService,
    presence_service: PresenceService,
    notification_service: NotificationService,
) -> dict[str, int]:
    """Records that the user is looking at the conversation and clears its notifications."""
    conversation = await conv_service.get_conversation_for_user(conversation_id, user)
    await presence_service.touch(conversation.id, user.id)
    cleared = await notification_service.mark_conversation_read(
        conversation.id, user.id
    )
    logger.debug(
        f"Handler: user {user.id} saw conversation {conversation.id}, "
        f"{cleared} notification(s) cleared"
    )
    return {"notificationsCleared": cleared}


@service_handler("loading conversation presence")
async def handle_get_presence(
    conversation_id: UUID,
    user: User,
    conv_service: ConversationService,
    presence_service: PresenceService,
) -> PresenceResponse:
    conversation = await conv_service.get_conversation_for_user(conversation_id, user)
    participants = await presence_service.get_conversation_presence(conversation)
    return PresenceResponse(conversation_id=conversation.id, participants=participants)

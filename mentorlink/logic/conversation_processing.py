import logging
from typing import Sequence
from uuid import UUID

# Conversation and chat actions, decoupled from the API routes so they can be
# exercised without HTTP.
from mentorlink.logic.common import service_handler
from mentorlink.models import Conversation, Message, User
from mentorlink.schemas.conversation import ConversationStatus, MentoringPlanUpdate
from mentorlink.services.conversation_service import ConversationService
from mentorlink.services.message_service import MessageService

logger = logging.getLogger(__name__)


@service_handler("listing conversations")
async def handle_list_conversations(
    user: User, conv_service: ConversationService
) -> Sequence[Conversation]:
    return await conv_service.list_conversations_for_user(user)


@service_handler("starting a conversation")
async def handle_start_conversation(
    email: str,
    goal: str | None,
    user: User,
    conv_service: ConversationService,
) -> tuple[Conversation, bool]:
    """
    Starts (or resumes) the conversation between the caller and the user
    registered under `email`.

    Returns:
        The conversation and whether it was newly created.

    Raises:
        BusinessRuleError: For any reason the pair cannot be matched. The
            message is the same in every case.
        DatabaseError: If the conversation could not be written.
    """
    conversation, created = await conv_service.start_conversation(user, email, goal)
    if created:
        logger.info(f"Handler: user {user.id} opened conversation {conversation.id}")
    return conversation, created


@service_handler("loading a conversation")
async def handle_get_conversation(
    conversation_id: UUID, user: User, conv_service: ConversationService
) -> Conversation:
    return await conv_service.get_conversation_for_user(conversation_id, user)


@service_handler("updating a conversation's status")
async def handle_update_conversation_status(
    conversation_id: UUID,
    new_status: ConversationStatus,
    user: User,
    conv_service: ConversationService,
) -> Conversation:
    conversation = await conv_service.update_status(conversation_id, user, new_status)
    logger.info(
        f"Handler: conversation {conversation_id} moved to {new_status.value} "
        f"by user {user.id}"
    )
    return conversation


@service_handler("updating the mentoring plan")
async def handle_update_mentoring_plan(
    conversation_id: UUID,
    update: MentoringPlanUpdate,
    user: User,
    conv_service: ConversationService,
) -> Conversation:
    return await conv_service.update_mentoring_plan(conversation_id, user, update)


@service_handler("listing messages")
async def handle_list_messages(
    conversation_id: UUID, user: User, msg_service: MessageService
) -> Sequence[Message]:
    return await msg_service.list_messages(conversation_id, user)


@service_handler("sending a message")
async def handle_create_message(
    conversation_id: UUID,
    content: str,
    user: User,
    msg_service: MessageService,
) -> Message:
    """Sends a chat message; notifying an away recipient happens in the service."""
    return await msg_service.create_message(conversation_id, user, content)

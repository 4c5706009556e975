import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.logic.conversation_processing import (
    handle_create_message,
    handle_get_conversation,
    handle_list_conversations,
    handle_list_messages,
    handle_start_conversation,
    handle_update_conversation_status,
    handle_update_mentoring_plan,
)
from mentorlink.models import User
from mentorlink.schemas.conversation import (
    ConversationResponse,
    ConversationStartRequest,
    ConversationStatusUpdate,
    MentoringPlanUpdate,
)
from mentorlink.schemas.message import MessageCreateRequest, MessageResponse
from mentorlink.services.conversation_service import ConversationService
from mentorlink.services.dependencies import (
    get_conversation_service,
    get_message_service,
)
from mentorlink.services.message_service import MessageService

logger = logging.getLogger(__name__)
conversations_router_instance = APIRouter()
router = BaseRouter(router=conversations_router_instance, default_tags=["conversations"])


@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
):
    """Conversations the current user takes part in, most recently updated first."""
    return await handle_list_conversations(user=user, conv_service=conv_service)


@router.post(
    "/conversations",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_conversation(
    request_data: ConversationStartRequest,
    response: Response,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
):
    """Opens a conversation with another user, or returns the active one (200)."""
    conversation, created = await handle_start_conversation(
        email=request_data.email,
        goal=request_data.goal,
        user=user,
        conv_service=conv_service,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return conversation


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
):
    return await handle_get_conversation(
        conversation_id=conversation_id, user=user, conv_service=conv_service
    )


@router.patch("/conversations/{conversation_id}", response_model=ConversationResponse)
async def update_conversation_status(
    conversation_id: UUID,
    request_data: ConversationStatusUpdate,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
):
    return await handle_update_conversation_status(
        conversation_id=conversation_id,
        new_status=request_data.status,
        user=user,
        conv_service=conv_service,
    )


@router.put(
    "/conversations/{conversation_id}/mentoring-plan",
    response_model=ConversationResponse,
)
async def update_mentoring_plan(
    conversation_id: UUID,
    request_data: MentoringPlanUpdate,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
):
    return await handle_update_mentoring_plan(
        conversation_id=conversation_id,
        update=request_data,
        user=user,
        conv_service=conv_service,
    )


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=List[MessageResponse],
    tags=["messages"],
)
async def list_messages(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    msg_service: MessageService = Depends(get_message_service),
):
    return await handle_list_messages(
        conversation_id=conversation_id, user=user, msg_service=msg_service
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["messages"],
)
async def create_message(
    conversation_id: UUID,
    request_data: MessageCreateRequest,
    user: User = Depends(current_active_user),
    msg_service: MessageService = Depends(get_message_service),
):
    """Sends a message; an away recipient also gets a notification."""
    return await handle_create_message(
        conversation_id=conversation_id,
        content=request_data.content,
        user=user,
        msg_service=msg_service,
    )

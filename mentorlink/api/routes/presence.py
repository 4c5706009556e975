from uuid import UUID

from fastapi import APIRouter, Depends

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.logic.presence_processing import (
    handle_get_presence,
    handle_heartbeat,
    handle_mark_seen,
)
from mentorlink.models import User
from mentorlink.schemas.presence import PresenceResponse
from mentorlink.services.conversation_service import ConversationService
from mentorlink.services.dependencies import (
    get_conversation_service,
    get_notification_service,
    get_presence_service,
)
from mentorlink.services.notification_service import NotificationService
from mentorlink.services.presence_service import PresenceService

presence_router_instance = APIRouter(prefix="/conversations/{conversation_id}")
router = BaseRouter(router=presence_router_instance, default_tags=["presence"])


@router.post("/presence/heartbeat")
async def heartbeat(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
    presence_service: PresenceService = Depends(get_presence_service),
):
    return await handle_heartbeat(
        conversation_id=conversation_id,
        user=user,
        conv_service=conv_service,
        presence_service=presence_service,
    )


@router.post("/seen")
async def mark_seen(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
    presence_service: PresenceService = Depends(get_presence_service),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return await handle_mark_seen(
        conversation_id=conversation_id,
        user=user,
        conv_service=conv_service,
        presence_service=presence_service,
        notification_service=notification_service,
    )


@router.get("/presence", response_model=PresenceResponse)
async def get_presence(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
    presence_service: PresenceService = Depends(get_presence_service),
):
    return await handle_get_presence(
        conversation_id=conversation_id,
        user=user,
        conv_service=conv_service,
        presence_service=presence_service,
    )

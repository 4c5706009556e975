import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.core.config import settings
from mentorlink.logic.conversation_processing import handle_get_conversation
from mentorlink.models import User
from mentorlink.realtime.dependencies import get_connection_registry
from mentorlink.realtime.gateway import ConnectionRegistry, stream_events
from mentorlink.services.conversation_service import ConversationService
from mentorlink.services.dependencies import get_conversation_service

logger = logging.getLogger(__name__)
events_router_instance = APIRouter()
router = BaseRouter(router=events_router_instance, default_tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/conversations/{conversation_id}/events")
async def conversation_events(
    conversation_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    conv_service: ConversationService = Depends(get_conversation_service),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """Live stream of the conversation's collaboration events (Server-Sent Events)."""
    conversation = await handle_get_conversation(
        conversation_id=conversation_id, user=user, conv_service=conv_service
    )
    connection = registry.connect(conversation.id)
    return StreamingResponse(
        stream_events(
            registry,
            connection,
            request.is_disconnected,
            keepalive_seconds=settings.SSE_KEEPALIVE_SECONDS,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )

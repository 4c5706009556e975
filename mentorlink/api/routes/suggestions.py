from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.logic.suggestion_processing import (
    handle_create_suggestion,
    handle_list_suggestions,
    handle_resolve_suggestion,
)
from mentorlink.models import User
from mentorlink.schemas.suggestion import (
    SuggestionCreateRequest,
    SuggestionResponse,
    SuggestionStatus,
)
from mentorlink.services.dependencies import get_suggestion_service
from mentorlink.services.suggestion_service import SuggestionService

suggestions_router_instance = APIRouter(prefix="/suggestions")
router = BaseRouter(router=suggestions_router_instance, default_tags=["suggestions"])


@router.get("", response_model=List[SuggestionResponse])
async def list_suggestions(
    conversation_id: UUID = Query(...),
    row_id: UUID | None = Query(None),
    status: SuggestionStatus | None = Query(None),
    user: User = Depends(current_active_user),
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
):
    return await handle_list_suggestions(
        conversation_id=conversation_id,
        row_id=row_id,
        status=status,
        user=user,
        suggestion_service=suggestion_service,
    )


@router.post(
    "", response_model=SuggestionResponse, status_code=status.HTTP_201_CREATED
)
async def create_suggestion(
    request_data: SuggestionCreateRequest,
    user: User = Depends(current_active_user),
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
):
    """Mentor proposes a new value for one field of an application row."""
    return await handle_create_suggestion(
        row_id=request_data.row_id,
        field=request_data.field,
        proposed_value=request_data.proposed_value,
        user=user,
        suggestion_service=suggestion_service,
    )


@router.post("/{suggestion_id}/accept", response_model=SuggestionResponse)
async def accept_suggestion(
    suggestion_id: UUID,
    user: User = Depends(current_active_user),
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
):
    return await handle_resolve_suggestion(
        suggestion_id=suggestion_id,
        accept=True,
        user=user,
        suggestion_service=suggestion_service,
    )


@router.post("/{suggestion_id}/reject", response_model=SuggestionResponse)
async def reject_suggestion(
    suggestion_id: UUID,
    user: User = Depends(current_active_user),
    suggestion_service: SuggestionService = Depends(get_suggestion_service),
):
    return await handle_resolve_suggestion(
        suggestion_id=suggestion_id,
        accept=False,
        user=user,
        suggestion_service=suggestion_service,
    )

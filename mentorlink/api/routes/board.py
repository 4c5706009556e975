import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from mentorlink.api.common import BaseRouter
from mentorlink.auth_config import current_active_user
from mentorlink.logic.board_processing import (
    handle_add_activity,
    handle_create_row,
    handle_delete_board,
    handle_get_board,
    handle_list_activity,
    handle_list_history,
    handle_list_rows,
    handle_set_columns,
    handle_set_tags,
    handle_undo_last_change,
    handle_update_row,
)
from mentorlink.models import User
from mentorlink.schemas.board import (
    ActivityCreateRequest,
    ActivityEntryResponse,
    BoardResponse,
    ColumnsUpdateRequest,
    RowCreateRequest,
    RowListResponse,
    RowResponse,
    RowUpdateRequest,
    TagsUpdateRequest,
)
from mentorlink.services.board_service import BoardService
from mentorlink.services.dependencies import get_board_service

logger = logging.getLogger(__name__)
board_router_instance = APIRouter(prefix="/conversations/{conversation_id}")
router = BaseRouter(router=board_router_instance, default_tags=["board"])


@router.get("/board", response_model=BoardResponse)
async def get_board(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    """Returns the board, creating the default one on first access."""
    return await handle_get_board(
        conversation_id=conversation_id, user=user, board_service=board_service
    )


@router.delete("/board")
async def delete_board(
    conversation_id: UUID,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_delete_board(
        conversation_id=conversation_id, user=user, board_service=board_service
    )


@router.put("/board/columns", response_model=BoardResponse)
async def set_columns(
    conversation_id: UUID,
    request_data: ColumnsUpdateRequest,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_set_columns(
        conversation_id=conversation_id,
        columns=request_data.columns,
        user=user,
        board_service=board_service,
    )


@router.get("/rows", response_model=RowListResponse, tags=["rows"])
async def list_rows(
    conversation_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_list_rows(
        conversation_id=conversation_id,
        page=page,
        limit=limit,
        user=user,
        board_service=board_service,
    )


@router.post(
    "/rows",
    response_model=RowResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["rows"],
)
async def create_row(
    conversation_id: UUID,
    request_data: RowCreateRequest,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_create_row(
        conversation_id=conversation_id,
        cells=request_data.cells,
        user=user,
        board_service=board_service,
    )


@router.patch("/rows/{row_id}", response_model=RowResponse, tags=["rows"])
async def update_row(
    conversation_id: UUID,
    row_id: UUID,
    request_data: RowUpdateRequest,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_update_row(
        conversation_id=conversation_id,
        row_id=row_id,
        cells=request_data.cells,
        user=user,
        board_service=board_service,
    )


@router.put("/rows/{row_id}/tags", response_model=RowResponse, tags=["rows"])
async def set_tags(
    conversation_id: UUID,
    row_id: UUID,
    request_data: TagsUpdateRequest,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_set_tags(
        conversation_id=conversation_id,
        row_id=row_id,
        tags=request_data.tags,
        user=user,
        board_service=board_service,
    )


@router.get(
    "/rows/{row_id}/activity",
    response_model=List[ActivityEntryResponse],
    tags=["rows"],
)
async def list_activity(
    conversation_id: UUID,
    row_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_list_activity(
        conversation_id=conversation_id,
        row_id=row_id,
        page=page,
        limit=limit,
        user=user,
        board_service=board_service,
    )


@router.post(
    "/rows/{row_id}/activity",
    response_model=ActivityEntryResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["rows"],
)
async def add_activity(
    conversation_id: UUID,
    row_id: UUID,
    request_data: ActivityCreateRequest,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_add_activity(
        conversation_id=conversation_id,
        row_id=row_id,
        message=request_data.message,
        user=user,
        board_service=board_service,
    )


@router.get("/rows/{row_id}/history", tags=["rows"])
async def list_history(
    conversation_id: UUID,
    row_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    """Field changes for one row, newest first."""
    return await handle_list_history(
        conversation_id=conversation_id,
        row_id=row_id,
        page=page,
        limit=limit,
        user=user,
        board_service=board_service,
    )


@router.post("/rows/{row_id}/history/undo", response_model=RowResponse, tags=["rows"])
async def undo_last_change(
    conversation_id: UUID,
    row_id: UUID,
    user: User = Depends(current_active_user),
    board_service: BoardService = Depends(get_board_service),
):
    return await handle_undo_last_change(
        conversation_id=conversation_id,
        row_id=row_id,
        user=user,
        board_service=board_service,
    )

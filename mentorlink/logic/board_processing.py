import logging
from typing import Any
from uuid import UUID

from mentorlink.logic.common import service_handler
from mentorlink.models import ApplicationBoard, ApplicationRow, RowActivityEntry, User
from mentorlink.schemas.board import (
    ColumnDefinition,
    HistoryEntryResponse,
    Pagination,
    RowListResponse,
    RowResponse,
    Tag,
)
from mentorlink.services.board_service import MAX_PAGE_SIZE, BoardService

logger = logging.getLogger(__name__)


@service_handler("loading the board")
async def handle_get_board(
    conversation_id: UUID, user: User, board_service: BoardService
) -> ApplicationBoard:
    return await board_service.get_board_for_user(conversation_id, user)


@service_handler("updating board columns")
async def handle_set_columns(
    conversation_id: UUID,
    columns: list[ColumnDefinition],
    user: User,
    board_service: BoardService,
) -> ApplicationBoard:
    board = await board_service.set_columns(
        conversation_id, user, [column.model_dump() for column in columns]
    )
    logger.info(
        f"Handler: board of conversation {conversation_id} now has "
        f"{len(board.columns)} column(s)"
    )
    return board


@service_handler("deleting the board")
async def handle_delete_board(
    conversation_id: UUID, user: User, board_service: BoardService
) -> dict[str, Any]:
    removed = await board_service.delete_board(conversation_id, user)
    return {"deleted": True, "rowsRemoved": removed}


@service_handler("listing application rows")
async def handle_list_rows(
    conversation_id: UUID,
    page: int,
    limit: int,
    user: User,
    board_service: BoardService,
) -> RowListResponse:
    rows, total, page, limit = await board_service.list_rows(
        conversation_id, user, page=page, limit=limit
    )
    return RowListResponse(
        rows=[RowResponse.model_validate(row) for row in rows],
        pagination=Pagination(page=page, limit=limit, total=total),
    )


@service_handler("creating an application row")
async def handle_create_row(
    conversation_id: UUID,
    cells: dict[str, Any],
    user: User,
    board_service: BoardService,
) -> ApplicationRow:
    return await board_service.create_row(conversation_id, user, cells)


@service_handler("updating an application row")
async def handle_update_row(
    conversation_id: UUID,
    row_id: UUID,
    cells: dict[str, Any],
    user: User,
    board_service: BoardService,
) -> ApplicationRow:
    return await board_service.update_row(conversation_id, row_id, user, cells)


@service_handler("updating row tags")
async def handle_set_tags(
    conversation_id: UUID,
    row_id: UUID,
    tags: list[Tag],
    user: User,
    board_service: BoardService,
) -> ApplicationRow:
    return await board_service.set_tags(
        conversation_id, row_id, user, [tag.model_dump() for tag in tags]
    )


@service_handler("adding a row activity note")
async def handle_add_activity(
    conversation_id: UUID,
    row_id: UUID,
    message: str,
    user: User,
    board_service: BoardService,
) -> RowActivityEntry:
    return await board_service.add_activity(conversation_id, row_id, user, message)


@service_handler("listing row activity")
async def handle_list_activity(
    conversation_id: UUID,
    row_id: UUID,
    page: int,
    limit: int,
    user: User,
    board_service: BoardService,
):
    return await board_service.list_activity(
        conversation_id, row_id, user, page=page, limit=limit
    )


@service_handler("listing row history")
async def handle_list_history(
    conversation_id: UUID,
    row_id: UUID,
    page: int,
    limit: int,
    user: User,
    board_service: BoardService,
) -> dict[str, Any]:
    entries, total = await board_service.list_history(
        conversation_id, row_id, user, page=page, limit=limit
    )
    return {
        "history": [HistoryEntryResponse.model_validate(entry) for entry in entries],
        "pagination": Pagination(
            page=max(1, page), limit=max(1, min(limit, MAX_PAGE_SIZE)), total=total
        ),
    }


@service_handler("undoing a row change")
async def handle_undo_last_change(
    conversation_id: UUID,
    row_id: UUID,
    user: User,
    board_service: BoardService,
) -> ApplicationRow:
    """Reverts the row's most recent change and returns the row as it now stands."""
    entry = await board_service.undo_last_change(conversation_id, row_id, user)
    logger.info(f"Handler: row {row_id} field '{entry.field}' reverted by {user.id}")
    return await board_service.get_row_for_user(conversation_id, row_id, user)

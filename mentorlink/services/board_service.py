import logging
from datetime import date
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from mentorlink.models import (
    ApplicationBoard,
    ApplicationRow,
    Conversation,
    RowActivityEntry,
    RowHistoryEntry,
    User,
)
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.repositories.board_repository import BoardRepository
from mentorlink.schemas.board import (
    ActivityEntryResponse,
    ColumnType,
    RowResponse,
)

from .cell_values import (
    DEFAULT_COLUMNS,
    coerce_cell_value,
    is_blank,
    validate_column_definitions,
)
from .conversation_service import ConversationService
from .exceptions import (
    BoardValidationError,
    BusinessRuleError,
    DatabaseError,
    NotAuthorizedError,
    RowNotFoundError,
    ServiceError,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def serialize_row(row: ApplicationRow) -> dict[str, Any]:
    return RowResponse.model_validate(row).model_dump(mode="json")


class BoardService:
    """Column schema and rows of one conversation's application board.

    Every field write goes through commit_cell_change, which records the
    prior value in the row's history.
    """

    def __init__(
        self,
        board_repository: BoardRepository,
        conversation_service: ConversationService,
        event_bus: EventBus,
    ):
        self.board_repo = board_repository
        self.conv_service = conversation_service
        self.bus = event_bus
        self.session = board_repository.session

    async def get_or_create_board(self, conversation_id: UUID) -> ApplicationBoard:
        """Idempotent; concurrent first calls converge on one board."""
        board = await self.board_repo.get_board(conversation_id)
        if board is not None:
            return board

        try:
            board_id = await self.board_repo.insert_board_if_absent(conversation_id)
            if board_id is not None:
                await self.board_repo.add_columns(board_id, DEFAULT_COLUMNS)
                logger.info(
                    f"Created default board {board_id} for conversation {conversation_id}"
                )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating board: {e}", exc_info=True)
            raise DatabaseError("Failed to create board due to a database error.")

        board = await self.board_repo.get_board(conversation_id)
        if board is None:
            raise ServiceError("Board could not be loaded after creation.")
        return board

    async def get_board_for_user(
        self, conversation_id: UUID, user: User
    ) -> ApplicationBoard:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        return await self.get_or_create_board(conversation.id)

    async def set_columns(
        self, conversation_id: UUID, user: User, columns: list[dict[str, Any]]
    ) -> ApplicationBoard:
        """Replaces the column list; invalid input leaves the board untouched."""
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        normalized = validate_column_definitions(columns)
        board = await self.get_or_create_board(conversation.id)

        try:
            await self.board_repo.replace_columns(board, normalized)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error updating columns: {e}", exc_info=True)
            raise DatabaseError("Failed to update columns due to a database error.")

        return await self.board_repo.get_board(conversation.id)

    async def delete_board(self, conversation_id: UUID, user: User) -> int:
        """Removes the board and all its rows. Mentor only.

        The next access recreates an empty default board.
        """
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        if conversation.role_of(user.id) != "mentor":
            raise NotAuthorizedError("Only the mentor can delete the board.")

        board = await self.board_repo.get_board(conversation.id)
        if board is None:
            return 0
        board_id = board.id
        try:
            removed = await self.board_repo.delete_board_cascade(board_id)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error deleting board: {e}", exc_info=True)
            raise DatabaseError("Failed to delete board due to a database error.")

        logger.info(
            f"Board {board_id} of conversation {conversation_id} deleted "
            f"with {removed} row(s)"
        )
        return removed

    async def _get_row_in(
        self, conversation: Conversation, row_id: UUID
    ) -> ApplicationRow:
        row = await self.board_repo.get_row(row_id)
        if row is None or row.conversation_id != conversation.id:
            raise RowNotFoundError()
        return row

    async def get_row_for_user(
        self, conversation_id: UUID, row_id: UUID, user: User
    ) -> ApplicationRow:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        return await self._get_row_in(conversation, row_id)

    async def list_rows(
        self, conversation_id: UUID, user: User, page: int = 1, limit: int = 50
    ) -> tuple[Sequence[ApplicationRow], int, int, int]:
        """Returns (rows, total, page, limit), newest activity first."""
        board = await self.get_board_for_user(conversation_id, user)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(1, page)
        rows, total = await self.board_repo.list_rows(
            board.id, offset=(page - 1) * limit, limit=limit
        )
        return rows, total, page, limit

    async def create_row(
        self, conversation_id: UUID, user: User, cells: dict[str, Any]
    ) -> ApplicationRow:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        board = await self.get_or_create_board(conversation.id)
        columns = {column.key: column for column in board.columns}

        values: dict[str, Any] = {}
        for key, value in (cells or {}).items():
            column = columns.get(key)
            if column is None:
                continue
            values[key] = coerce_cell_value(column, value)

        if values:
            missing = [
                column.name
                for column in board.columns
                if column.required and is_blank(values.get(column.key))
            ]
            if missing:
                raise BoardValidationError(
                    f"Missing required field(s): {', '.join(missing)}."
                )
        else:
            # A blank row starts with sensible defaults
            status_column = columns.get("status")
            if (
                status_column is not None
                and status_column.type == ColumnType.SELECT
                and status_column.options
            ):
                values["status"] = status_column.options[0]
            date_column = columns.get("dateApplied")
            if date_column is not None and date_column.type == ColumnType.DATE:
                values["dateApplied"] = date.today().isoformat()

        try:
            row = await self.board_repo.create_row(
                board.id, conversation.id, user.id, values
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating row: {e}", exc_info=True)
            raise DatabaseError("Failed to create application row due to a database error.")

        self.bus.publish(
            CollaborationEvent.APPLICATION_CREATED,
            {
                "conversationId": str(conversation.id),
                "applicationId": str(row.id),
                "application": serialize_row(row),
            },
        )
        return row

    async def commit_cell_change(
        self, row_id: UUID, field: str, new_value: Any, acting_role: str
    ) -> RowHistoryEntry:
        """Writes one field and appends exactly one history entry.

        Joins the caller's transaction; the caller commits. Does not touch
        the activity log.
        """
        # Lock the row so the recorded old value is the one being replaced
        row = await self.board_repo.get_row(row_id, for_update=True)
        if row is None:
            raise RowNotFoundError()
        old_value = (row.cells or {}).get(field)
        await self.board_repo.write_cell(row.id, field, new_value)
        return await self.board_repo.add_history(
            row_id=row.id,
            field=field,
            old_value=old_value,
            new_value=new_value,
            changed_by=acting_role,
        )

    async def update_row(
        self,
        conversation_id: UUID,
        row_id: UUID,
        user: User,
        cells: dict[str, Any],
    ) -> ApplicationRow:
        """Applies a partial cell update; unchanged fields leave no history."""
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        board = await self.get_or_create_board(conversation.id)
        row = await self._get_row_in(conversation, row_id)
        columns = {column.key: column for column in board.columns}

        # Validate everything before writing anything
        changes: dict[str, Any] = {}
        current = row.cells or {}
        for key, value in (cells or {}).items():
            column = columns.get(key)
            if column is None:
                continue
            coerced = coerce_cell_value(column, value)
            if column.required and is_blank(coerced):
                raise BoardValidationError(f"'{column.name}' is required.")
            if current.get(key) != coerced:
                changes[key] = coerced

        if not changes:
            return row

        acting_role = conversation.role_of(user.id)
        try:
            for field, value in changes.items():
                await self.commit_cell_change(row.id, field, value, acting_role)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error updating row: {e}", exc_info=True)
            raise DatabaseError("Failed to update application row due to a database error.")

        row = await self.board_repo.get_row(row.id)
        self.publish_row_updated(conversation.id, row, changes, acting_role)
        return row

    def publish_row_updated(
        self,
        conversation_id: UUID,
        row: ApplicationRow,
        changes: dict[str, Any],
        acting_role: str | None,
    ) -> None:
        self.bus.publish(
            CollaborationEvent.APPLICATION_UPDATED,
            {
                "conversationId": str(conversation_id),
                "applicationId": str(row.id),
                "changes": changes,
                "updatedBy": acting_role,
                "application": serialize_row(row),
            },
        )

    async def set_tags(
        self,
        conversation_id: UUID,
        row_id: UUID,
        user: User,
        tags: list[dict[str, str]],
    ) -> ApplicationRow:
        row = await self.get_row_for_user(conversation_id, row_id, user)
        try:
            await self.board_repo.set_tags(row, tags)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error updating tags: {e}", exc_info=True)
            raise DatabaseError("Failed to update tags due to a database error.")

        self.bus.publish(
            CollaborationEvent.APPLICATION_UPDATED,
            {
                "conversationId": str(row.conversation_id),
                "applicationId": str(row.id),
                "changes": {"tags": tags},
                "application": serialize_row(row),
            },
        )
        return row

    async def add_activity(
        self, conversation_id: UUID, row_id: UUID, user: User, message: str
    ) -> RowActivityEntry:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        row = await self._get_row_in(conversation, row_id)
        try:
            entry = await self.board_repo.add_activity(
                row.id, conversation.role_of(user.id), message.strip()
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error adding activity: {e}", exc_info=True)
            raise DatabaseError("Failed to add activity due to a database error.")

        self.publish_activity(conversation.id, entry)
        return entry

    def publish_activity(self, conversation_id: UUID, entry: RowActivityEntry) -> None:
        self.bus.publish(
            CollaborationEvent.ACTIVITY_LOG_CREATED,
            {
                "conversationId": str(conversation_id),
                "applicationId": str(entry.row_id),
                "activityLogId": str(entry.id),
                "entry": ActivityEntryResponse.model_validate(entry).model_dump(
                    mode="json"
                ),
            },
        )

    async def list_activity(
        self,
        conversation_id: UUID,
        row_id: UUID,
        user: User,
        page: int = 1,
        limit: int = 50,
    ) -> Sequence[RowActivityEntry]:
        row = await self.get_row_for_user(conversation_id, row_id, user)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return await self.board_repo.list_activity(
            row.id, offset=(max(1, page) - 1) * limit, limit=limit
        )

    async def list_history(
        self,
        conversation_id: UUID,
        row_id: UUID,
        user: User,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[Sequence[RowHistoryEntry], int]:
        row = await self.get_row_for_user(conversation_id, row_id, user)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        entries = await self.board_repo.list_history(
            row.id, offset=(max(1, page) - 1) * limit, limit=limit
        )
        return entries, await self.board_repo.count_history(row.id)

    async def undo_last_change(
        self, conversation_id: UUID, row_id: UUID, user: User
    ) -> RowHistoryEntry:
        """Restores the previous value of the most recent change.

        History is never rewritten: the undo itself becomes a new entry.
        """
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        row = await self._get_row_in(conversation, row_id)
        latest = await self.board_repo.list_history(row.id, limit=1)
        if not latest:
            raise BusinessRuleError("No history to undo.")
        last_change = latest[0]
        current_value = (row.cells or {}).get(last_change.field)
        acting_role = conversation.role_of(user.id)

        try:
            entry = await self.commit_cell_change(
                row.id, last_change.field, last_change.old_value, acting_role
            )
            activity = await self.board_repo.add_activity(
                row.id,
                acting_role,
                f'Undid change to {last_change.field} (restored from "{current_value}" '
                f'back to "{last_change.old_value}")',
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error undoing change: {e}", exc_info=True)
            raise DatabaseError("Failed to undo change due to a database error.")

        row = await self.board_repo.get_row(row.id)
        self.publish_row_updated(
            conversation.id, row, {last_change.field: last_change.old_value}, acting_role
        )
        self.publish_activity(conversation.id, activity)
        return entry

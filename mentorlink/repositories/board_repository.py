import json
import uuid
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import JSON, Text, cast, delete, func, literal, select, update
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mentorlink.core.clock import utcnow
from mentorlink.models import (
    ApplicationBoard,
    ApplicationRow,
    BoardColumn,
    Reminder,
    RowActivityEntry,
    RowHistoryEntry,
    Suggestion,
)

from .base import BaseRepository


class BoardRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_board(self, conversation_id: UUID) -> ApplicationBoard | None:
        """Loads a board with its columns in display order."""
        stmt = (
            select(ApplicationBoard)
            .filter(ApplicationBoard.conversation_id == conversation_id)
            .options(selectinload(ApplicationBoard.columns))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def insert_board_if_absent(self, conversation_id: UUID) -> UUID | None:
        """Inserts the board row unless one exists for the conversation.

        Returns the new board id when this call created it, otherwise None.
        """
        board_id = uuid.uuid4()
        now = utcnow()
        stmt = (
            self.insert_for_dialect(ApplicationBoard)
            .values(
                id=board_id,
                conversation_id=conversation_id,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["conversation_id"])
        )
        result = await self.session.execute(stmt)
        return board_id if result.rowcount == 1 else None

    async def add_columns(
        self, board_id: UUID, columns: list[dict[str, Any]]
    ) -> None:
        for order, column in enumerate(columns):
            self.session.add(BoardColumn(board_id=board_id, order=order, **column))
        await self.session.flush()

    async def replace_columns(
        self, board: ApplicationBoard, columns: list[dict[str, Any]]
    ) -> None:
        """Applies a full column list; existing keys keep their column id."""
        existing = {column.key: column for column in board.columns}
        wanted_keys = {column["key"] for column in columns}

        for key, column in existing.items():
            if key not in wanted_keys:
                await self.session.delete(column)
        # Free removed keys before new columns may reuse them
        await self.session.flush()

        for order, definition in enumerate(columns):
            column = existing.get(definition["key"])
            if column is None:
                self.session.add(
                    BoardColumn(board_id=board.id, order=order, **definition)
                )
            else:
                column.name = definition["name"]
                column.type = definition["type"]
                column.required = definition["required"]
                column.options = definition["options"]
                column.width = definition["width"]
                column.order = order
        board.updated_at = utcnow()
        await self.session.flush()

    async def delete_board_cascade(self, board_id: UUID) -> int:
        """Deletes a board with its rows and everything hanging off them.

        Reminders pointing at deleted rows are kept and detached.
        Returns the number of rows removed.
        """
        row_ids = select(ApplicationRow.id).where(ApplicationRow.board_id == board_id)
        no_sync = {"synchronize_session": False}

        await self.session.execute(
            update(Reminder)
            .where(Reminder.row_id.in_(row_ids))
            .values(row_id=None)
            .execution_options(**no_sync)
        )
        for model in (Suggestion, RowHistoryEntry, RowActivityEntry):
            await self.session.execute(
                delete(model)
                .where(model.row_id.in_(row_ids))
                .execution_options(**no_sync)
            )
        result = await self.session.execute(
            delete(ApplicationRow)
            .where(ApplicationRow.board_id == board_id)
            .execution_options(**no_sync)
        )
        await self.session.execute(
            delete(BoardColumn)
            .where(BoardColumn.board_id == board_id)
            .execution_options(**no_sync)
        )
        await self.session.execute(
            delete(ApplicationBoard)
            .where(ApplicationBoard.id == board_id)
            .execution_options(**no_sync)
        )
        return result.rowcount

    async def get_row(
        self, row_id: UUID, for_update: bool = False
    ) -> ApplicationRow | None:
        stmt = (
            select(ApplicationRow)
            .filter(ApplicationRow.id == row_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_rows(
        self, board_id: UUID, offset: int, limit: int
    ) -> tuple[Sequence[ApplicationRow], int]:
        total = await self.session.scalar(
            select(func.count())
            .select_from(ApplicationRow)
            .where(ApplicationRow.board_id == board_id)
        )
        stmt = (
            select(ApplicationRow)
            .filter(ApplicationRow.board_id == board_id)
            .order_by(ApplicationRow.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all(), total or 0

    async def create_row(
        self,
        board_id: UUID,
        conversation_id: UUID,
        user_id: UUID,
        cells: dict[str, Any],
    ) -> ApplicationRow:
        row = ApplicationRow(
            board_id=board_id,
            conversation_id=conversation_id,
            created_by_user_id=user_id,
            cells=cells,
            tags=[],
        )
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def write_cell(self, row_id: UUID, field: str, value: Any) -> None:
        """Sets one key inside the stored cells without rewriting the others.

        The merge happens in the database, so concurrent writes to different
        fields of the same row all survive. Reload the row to see the result.
        """
        encoded = json.dumps(value)
        if self.session.bind.dialect.name == "postgresql":
            cells = cast(
                func.jsonb_set(
                    cast(ApplicationRow.cells, postgresql.JSONB),
                    cast(postgresql.array([field]), postgresql.ARRAY(Text)),
                    cast(literal(encoded), postgresql.JSONB),
                ),
                JSON,
            )
        else:
            cells = func.json_set(
                ApplicationRow.cells,
                f'$."{field}"',
                func.json(encoded),
            )
        await self.session.execute(
            update(ApplicationRow)
            .where(ApplicationRow.id == row_id)
            .values(cells=cells, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    async def set_tags(self, row: ApplicationRow, tags: list[dict[str, str]]) -> None:
        row.tags = tags
        row.updated_at = utcnow()
        self.session.add(row)
        await self.session.flush()

    async def add_history(
        self,
        row_id: UUID,
        field: str,
        old_value: Any,
        new_value: Any,
        changed_by: str,
        timestamp: datetime | None = None,
    ) -> RowHistoryEntry:
        entry = RowHistoryEntry(
            row_id=row_id,
            field=field,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
            timestamp=timestamp or utcnow(),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def add_activity(
        self, row_id: UUID, author_role: str, message: str
    ) -> RowActivityEntry:
        entry = RowActivityEntry(
            row_id=row_id, author_role=author_role, message=message, timestamp=utcnow()
        )
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def list_history(
        self, row_id: UUID, offset: int = 0, limit: int = 50
    ) -> Sequence[RowHistoryEntry]:
        """History entries for a row, newest first."""
        stmt = (
            select(RowHistoryEntry)
            .filter(RowHistoryEntry.row_id == row_id)
            .order_by(RowHistoryEntry.timestamp.desc(), RowHistoryEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_history(self, row_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(RowHistoryEntry)
            .where(RowHistoryEntry.row_id == row_id)
        )
        return total or 0

    async def list_activity(
        self, row_id: UUID, offset: int = 0, limit: int = 50
    ) -> Sequence[RowActivityEntry]:
        """Activity entries for a row, newest first."""
        stmt = (
            select(RowActivityEntry)
            .filter(RowActivityEntry.row_id == row_id)
            .order_by(RowActivityEntry.timestamp.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

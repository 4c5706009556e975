from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.core.clock import utcnow
from mentorlink.models import Suggestion
from mentorlink.schemas.suggestion import SuggestionStatus

from .base import BaseRepository


class SuggestionRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create_suggestion(
        self,
        conversation_id: UUID,
        row_id: UUID,
        field: str,
        old_value: Any,
        proposed_value: Any,
        proposed_by_role: str,
        proposed_by_user_id: UUID,
    ) -> Suggestion:
        suggestion = Suggestion(
            conversation_id=conversation_id,
            row_id=row_id,
            field=field,
            old_value=old_value,
            proposed_value=proposed_value,
            proposed_by_role=proposed_by_role,
            proposed_by_user_id=proposed_by_user_id,
            status=SuggestionStatus.PENDING,
        )
        self.session.add(suggestion)
        await self.session.flush()
        await self.session.refresh(suggestion)
        return suggestion

    async def get_suggestion_by_id(self, suggestion_id: UUID) -> Suggestion | None:
        stmt = (
            select(Suggestion)
            .filter(Suggestion.id == suggestion_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_suggestions(
        self,
        conversation_id: UUID,
        *,
        row_id: UUID | None = None,
        status: SuggestionStatus | None = None,
    ) -> Sequence[Suggestion]:
        stmt = select(Suggestion).filter(Suggestion.conversation_id == conversation_id)
        if row_id is not None:
            stmt = stmt.filter(Suggestion.row_id == row_id)
        if status is not None:
            stmt = stmt.filter(Suggestion.status == status)
        stmt = stmt.order_by(Suggestion.created_at.desc())
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def resolve_if_pending(
        self, suggestion_id: UUID, new_status: SuggestionStatus
    ) -> bool:
        """Moves a pending suggestion to its final status.

        The status check and write happen in one UPDATE; returns False when
        another resolution got there first.
        """
        now = utcnow()
        stmt = (
            update(Suggestion)
            .where(
                Suggestion.id == suggestion_id,
                Suggestion.status == SuggestionStatus.PENDING,
            )
            .values(status=new_status, resolved_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

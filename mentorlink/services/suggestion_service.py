import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from mentorlink.models import Suggestion, User
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.repositories.suggestion_repository import SuggestionRepository
from mentorlink.schemas.notification import NotificationType
from mentorlink.schemas.suggestion import SuggestionResponse, SuggestionStatus

from .board_service import BoardService
from .cell_values import coerce_cell_value, is_blank
from .exceptions import (
    BoardValidationError,
    DatabaseError,
    NotAuthorizedError,
    RowNotFoundError,
    ServiceError,
    SuggestionAlreadyResolvedError,
    SuggestionNotFoundError,
)
from .notification_service import NotificationService
from .presence_service import PresenceService

logger = logging.getLogger(__name__)


class SuggestionService:
    """Mentor proposes a value for one row field; the mentee resolves it once."""

    def __init__(
        self,
        suggestion_repository: SuggestionRepository,
        board_service: BoardService,
        presence_service: PresenceService,
        notification_service: NotificationService,
        event_bus: EventBus,
    ):
        self.suggestion_repo = suggestion_repository
        self.boards = board_service
        self.conv_service = board_service.conv_service
        self.presence = presence_service
        self.notifications = notification_service
        self.bus = event_bus
        self.session = suggestion_repository.session

    async def create_suggestion(
        self,
        user: User,
        row_id: UUID,
        field: str,
        proposed_value: Any,
    ) -> Suggestion:
        row = await self.boards.board_repo.get_row(row_id)
        if row is None:
            raise RowNotFoundError()
        conversation = await self.conv_service.get_conversation_for_user(
            row.conversation_id, user
        )
        if conversation.role_of(user.id) != "mentor":
            raise NotAuthorizedError("Only the mentor can propose suggestions.")

        board = await self.boards.get_or_create_board(conversation.id)
        column = next((c for c in board.columns if c.key == field), None)
        if column is None:
            raise BoardValidationError(f"Unknown field '{field}'.")
        proposed_value = coerce_cell_value(column, proposed_value)
        if column.required and is_blank(proposed_value):
            raise BoardValidationError(f"'{column.name}' is required.")

        # The snapshot is taken here; a client-supplied old value is never trusted
        old_value = (row.cells or {}).get(field)

        try:
            suggestion = await self.suggestion_repo.create_suggestion(
                conversation_id=conversation.id,
                row_id=row.id,
                field=field,
                old_value=old_value,
                proposed_value=proposed_value,
                proposed_by_role="mentor",
                proposed_by_user_id=user.id,
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating suggestion: {e}", exc_info=True)
            raise DatabaseError("Failed to create suggestion due to a database error.")

        self.bus.publish(
            CollaborationEvent.SUGGESTION_CREATED,
            {
                "conversationId": str(conversation.id),
                "suggestionId": str(suggestion.id),
                "applicationId": str(row.id),
                "suggestion": self._serialize(suggestion),
            },
        )

        if await self.presence.is_away(conversation.id, conversation.mentee_id):
            try:
                await self.notifications.notify(
                    recipient_id=conversation.mentee_id,
                    conversation_id=conversation.id,
                    type=NotificationType.MENTOR_SUGGESTION,
                    title="New suggestion from your mentor",
                    body=f'Your mentor suggested changing {column.name} to "{proposed_value}".',
                    link=f"/mentor-communication/{conversation.id}/applications",
                    meta={
                        "suggestionId": str(suggestion.id),
                        "applicationId": str(row.id),
                        "field": field,
                    },
                )
            except ServiceError as e:
                logger.warning(
                    f"Suggestion {suggestion.id} created but notification failed: {e}"
                )
        return suggestion

    async def list_suggestions(
        self,
        conversation_id: UUID,
        user: User,
        *,
        row_id: UUID | None = None,
        status: SuggestionStatus | None = None,
    ) -> Sequence[Suggestion]:
        conversation = await self.conv_service.get_conversation_for_user(
            conversation_id, user
        )
        return await self.suggestion_repo.list_suggestions(
            conversation.id, row_id=row_id, status=status
        )

    async def _load_for_resolution(self, suggestion_id: UUID, user: User):
        suggestion = await self.suggestion_repo.get_suggestion_by_id(suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError()
        conversation = await self.conv_service.get_conversation_for_user(
            suggestion.conversation_id, user
        )
        if conversation.role_of(user.id) != "mentee":
            raise NotAuthorizedError(
                "Only the mentee in this conversation can resolve suggestions."
            )
        if suggestion.status != SuggestionStatus.PENDING:
            raise SuggestionAlreadyResolvedError()
        return suggestion, conversation

    async def accept(self, suggestion_id: UUID, user: User) -> Suggestion:
        """Applies the proposed value and closes the suggestion, atomically.

        Losing a race against another resolution raises a conflict and
        leaves the row untouched.
        """
        suggestion, conversation = await self._load_for_resolution(suggestion_id, user)
        board = await self.boards.get_or_create_board(conversation.id)
        column = next((c for c in board.columns if c.key == suggestion.field), None)
        if column is None:
            raise BoardValidationError(
                f"Field '{suggestion.field}' no longer exists on the board."
            )
        value = coerce_cell_value(column, suggestion.proposed_value)
        # The column may have become required after the suggestion was made
        if column.required and is_blank(value):
            raise BoardValidationError(f"'{column.name}' is required.")

        try:
            claimed = await self.suggestion_repo.resolve_if_pending(
                suggestion.id, SuggestionStatus.ACCEPTED
            )
            if not claimed:
                raise SuggestionAlreadyResolvedError()

            row = await self.boards.board_repo.get_row(suggestion.row_id)
            old_value = (row.cells or {}).get(suggestion.field) if row else None
            await self.boards.commit_cell_change(
                suggestion.row_id, suggestion.field, value, "mentee"
            )
            activity = await self.boards.board_repo.add_activity(
                suggestion.row_id,
                "mentee",
                f'Accepted suggestion to change {suggestion.field} from "{old_value}" '
                f'to "{value}"',
            )
            await self.session.commit()
        except ServiceError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error accepting suggestion: {e}", exc_info=True)
            raise DatabaseError("Failed to accept suggestion due to a database error.")

        suggestion = await self.suggestion_repo.get_suggestion_by_id(suggestion.id)
        row = await self.boards.board_repo.get_row(suggestion.row_id)
        self._publish_resolved(suggestion)
        self.boards.publish_row_updated(
            conversation.id, row, {suggestion.field: value}, "mentee"
        )
        self.boards.publish_activity(conversation.id, activity)
        return suggestion

    async def reject(self, suggestion_id: UUID, user: User) -> Suggestion:
        suggestion, _ = await self._load_for_resolution(suggestion_id, user)
        try:
            claimed = await self.suggestion_repo.resolve_if_pending(
                suggestion.id, SuggestionStatus.REJECTED
            )
            if not claimed:
                raise SuggestionAlreadyResolvedError()
            await self.session.commit()
        except ServiceError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error rejecting suggestion: {e}", exc_info=True)
            raise DatabaseError("Failed to reject suggestion due to a database error.")

        suggestion = await self.suggestion_repo.get_suggestion_by_id(suggestion.id)
        self._publish_resolved(suggestion)
        return suggestion

    def _publish_resolved(self, suggestion: Suggestion) -> None:
        self.bus.publish(
            CollaborationEvent.SUGGESTION_RESOLVED,
            {
                "conversationId": str(suggestion.conversation_id),
                "suggestionId": str(suggestion.id),
                "applicationId": str(suggestion.row_id),
                "status": suggestion.status.value,
                "suggestion": self._serialize(suggestion),
            },
        )

    @staticmethod
    def _serialize(suggestion: Suggestion) -> dict[str, Any]:
        return SuggestionResponse.model_validate(suggestion).model_dump(mode="json")

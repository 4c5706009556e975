import logging
from typing import Any, Sequence
from uuid import UUID

from mentorlink.logic.common import service_handler
from mentorlink.models import Suggestion, User
from mentorlink.schemas.suggestion import SuggestionStatus
from mentorlink.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)


@service_handler("creating a suggestion")
async def handle_create_suggestion(
    row_id: UUID,
    field: str,
    proposed_value: Any,
    user: User,
    suggestion_service: SuggestionService,
) -> Suggestion:
    return await suggestion_service.create_suggestion(
        user, row_id, field, proposed_value
    )


@service_handler("listing suggestions")
async def handle_list_suggestions(
    conversation_id: UUID,
    row_id: UUID | None,
    status: SuggestionStatus | None,
    user: User,
    suggestion_service: SuggestionService,
) -> Sequence[Suggestion]:
    return await suggestion_service.list_suggestions(
        conversation_id, user, row_id=row_id, status=status
    )


@service_handler("resolving a suggestion")
async def handle_resolve_suggestion(
    suggestion_id: UUID,
    accept: bool,
    user: User,
    suggestion_service: SuggestionService,
) -> Suggestion:
    """
    Accepts or rejects a pending suggestion.

    Raises:
        SuggestionAlreadyResolvedError: If the suggestion was resolved before,
            including by a concurrent request.
        NotAuthorizedError: If the caller is not the conversation's mentee.
    """
    if accept:
        suggestion = await suggestion_service.accept(suggestion_id, user)
    else:
        suggestion = await suggestion_service.reject(suggestion_id, user)
    logger.info(
        f"Handler: suggestion {suggestion_id} {suggestion.status.value} by user {user.id}"
    )
    return suggestion

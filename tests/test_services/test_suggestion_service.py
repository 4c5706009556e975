import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from test_helpers import EventRecorder, build_services

from mentorlink.models import (
    ApplicationRow,
    Conversation,
    Notification,
    RowActivityEntry,
    RowHistoryEntry,
    User,
)
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.schemas.notification import NotificationType
from mentorlink.schemas.suggestion import SuggestionStatus
from mentorlink.services.exceptions import (
    BoardValidationError,
    NotAuthorizedError,
    RowNotFoundError,
    SuggestionAlreadyResolvedError,
)


@pytest.fixture
async def row(
    session: AsyncSession, bus: EventBus, conversation: Conversation, mentee: User
) -> ApplicationRow:
    services = build_services(session, bus)
    return await services.boards.create_row(
        conversation.id,
        mentee,
        {"company": "Acme", "position": "Engineer", "status": "Applied"},
    )


async def test_mentor_creates_suggestion_with_server_snapshot(
    session: AsyncSession,
    bus: EventBus,
    conversation: Conversation,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    recorder = EventRecorder(bus, CollaborationEvent.SUGGESTION_CREATED)

    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Interview"
    )

    assert suggestion.old_value == "Applied"
    assert suggestion.proposed_value == "Interview"
    assert suggestion.proposed_by_role == "mentor"
    assert suggestion.status == SuggestionStatus.PENDING
    [payload] = recorder.of(CollaborationEvent.SUGGESTION_CREATED)
    assert payload["conversationId"] == str(conversation.id)
    assert payload["applicationId"] == str(row.id)

    # The mentee has never been seen, so they are away and get notified
    notifications, total, unread = await services.notifications.list_notifications(
        mentee.id
    )
    assert total == 1
    assert unread == 1
    assert notifications[0].type == NotificationType.MENTOR_SUGGESTION


async def test_present_mentee_is_not_notified(
    session: AsyncSession,
    bus: EventBus,
    conversation: Conversation,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    await services.presence.touch(conversation.id, mentee.id)

    await services.suggestions.create_suggestion(mentor, row.id, "status", "Offer")

    assert await services.notifications.unread_count(mentee.id) == 0


async def test_only_mentor_may_suggest(
    session: AsyncSession, bus: EventBus, mentee: User, row: ApplicationRow
):
    services = build_services(session, bus)
    with pytest.raises(NotAuthorizedError):
        await services.suggestions.create_suggestion(mentee, row.id, "status", "Offer")


async def test_suggestion_value_and_field_are_validated(
    session: AsyncSession, bus: EventBus, mentor: User, row: ApplicationRow
):
    services = build_services(session, bus)
    with pytest.raises(BoardValidationError):
        await services.suggestions.create_suggestion(mentor, row.id, "salary", 100)
    with pytest.raises(BoardValidationError):
        await services.suggestions.create_suggestion(
            mentor, row.id, "status", "Ghosted"
        )


@pytest.mark.parametrize("blank", [None, "", "   "])
async def test_suggestion_cannot_blank_a_required_field(
    session: AsyncSession, bus: EventBus, mentor: User, row: ApplicationRow, blank
):
    services = build_services(session, bus)
    with pytest.raises(BoardValidationError):
        await services.suggestions.create_suggestion(mentor, row.id, "company", blank)

    assert (
        await services.suggestions.suggestion_repo.list_suggestions(
            row.conversation_id, row_id=row.id
        )
        == []
    )


async def test_accept_rechecks_required_columns(
    session: AsyncSession,
    bus: EventBus,
    conversation: Conversation,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "notes", ""
    )
    await services.boards.set_columns(
        conversation.id,
        mentee,
        [
            {"key": "company", "name": "Company", "type": "text", "required": True},
            {"key": "notes", "name": "Notes", "type": "longtext", "required": True},
        ],
    )

    with pytest.raises(BoardValidationError):
        await services.suggestions.accept(suggestion.id, mentee)

    still_pending = await services.suggestions.suggestion_repo.get_suggestion_by_id(
        suggestion.id
    )
    assert still_pending.status == SuggestionStatus.PENDING
    assert await session.scalar(
        select(func.count(RowHistoryEntry.id)).where(RowHistoryEntry.row_id == row.id)
    ) == 0


async def test_suggestion_for_missing_row(
    session: AsyncSession, bus: EventBus, mentor: User
):
    services = build_services(session, bus)
    with pytest.raises(RowNotFoundError):
        await services.suggestions.create_suggestion(
            mentor, uuid.uuid4(), "status", "Offer"
        )


async def test_accept_applies_value_and_publishes_in_order(
    session: AsyncSession,
    bus: EventBus,
    conversation: Conversation,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Interview"
    )
    recorder = EventRecorder(
        bus,
        CollaborationEvent.SUGGESTION_RESOLVED,
        CollaborationEvent.APPLICATION_UPDATED,
        CollaborationEvent.ACTIVITY_LOG_CREATED,
    )

    resolved = await services.suggestions.accept(suggestion.id, mentee)

    assert resolved.status == SuggestionStatus.ACCEPTED
    assert resolved.resolved_at is not None
    assert recorder.names() == [
        "suggestion.resolved",
        "application.updated",
        "activityLog.created",
    ]
    updated = recorder.of(CollaborationEvent.APPLICATION_UPDATED)[0]
    assert updated["application"]["cells"]["status"] == "Interview"
    assert updated["updatedBy"] == "mentee"

    history = (
        await session.execute(
            select(RowHistoryEntry).where(RowHistoryEntry.row_id == row.id)
        )
    ).scalars().all()
    assert len(history) == 1
    assert history[0].changed_by == "mentee"
    assert history[0].old_value == "Applied"
    activity_count = await session.scalar(
        select(func.count(RowActivityEntry.id)).where(RowActivityEntry.row_id == row.id)
    )
    assert activity_count == 1


async def test_second_resolution_conflicts_and_changes_nothing(
    session: AsyncSession,
    bus: EventBus,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Offer"
    )
    await services.suggestions.reject(suggestion.id, mentee)

    with pytest.raises(SuggestionAlreadyResolvedError):
        await services.suggestions.accept(suggestion.id, mentee)

    refreshed = await services.boards.board_repo.get_row(row.id)
    assert refreshed.cells["status"] == "Applied"
    final = await services.suggestions.suggestion_repo.get_suggestion_by_id(
        suggestion.id
    )
    assert final.status == SuggestionStatus.REJECTED


async def test_conditional_resolution_only_succeeds_once(
    session: AsyncSession, bus: EventBus, mentor: User, row: ApplicationRow
):
    services = build_services(session, bus)
    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Offer"
    )
    repo = services.suggestions.suggestion_repo

    first = await repo.resolve_if_pending(suggestion.id, SuggestionStatus.ACCEPTED)
    second = await repo.resolve_if_pending(suggestion.id, SuggestionStatus.REJECTED)
    await session.commit()

    assert (first, second) == (True, False)


async def test_only_mentee_resolves(
    session: AsyncSession, bus: EventBus, mentor: User, row: ApplicationRow
):
    services = build_services(session, bus)
    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Offer"
    )
    with pytest.raises(NotAuthorizedError):
        await services.suggestions.accept(suggestion.id, mentor)


async def test_reject_leaves_row_untouched(
    session: AsyncSession,
    bus: EventBus,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    suggestion = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Offer"
    )
    recorder = EventRecorder(
        bus, CollaborationEvent.SUGGESTION_RESOLVED, CollaborationEvent.APPLICATION_UPDATED
    )

    await services.suggestions.reject(suggestion.id, mentee)

    assert recorder.names() == ["suggestion.resolved"]
    assert recorder.events[0][1]["status"] == "rejected"
    history_count = await session.scalar(
        select(func.count(RowHistoryEntry.id)).where(RowHistoryEntry.row_id == row.id)
    )
    assert history_count == 0


async def test_list_filters_by_status(
    session: AsyncSession,
    bus: EventBus,
    conversation: Conversation,
    mentor: User,
    mentee: User,
    row: ApplicationRow,
):
    services = build_services(session, bus)
    first = await services.suggestions.create_suggestion(
        mentor, row.id, "status", "Offer"
    )
    await services.suggestions.create_suggestion(mentor, row.id, "notes", "Ask about team")
    await services.suggestions.reject(first.id, mentee)

    pending = await services.suggestions.list_suggestions(
        conversation.id, mentee, status=SuggestionStatus.PENDING
    )
    everything = await services.suggestions.list_suggestions(
        conversation.id, mentee, row_id=row.id
    )

    assert [s.field for s in pending] == ["notes"]
    assert len(everything) == 2
    assert (
        await session.scalar(select(func.count(Notification.id)))
    ) == 2

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from test_helpers import EventRecorder, build_services

from mentorlink.models import Conversation, User
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.schemas.conversation import ConversationStatus, MentoringPlanUpdate
from mentorlink.services.conversation_service import START_FAILED_MESSAGE
from mentorlink.services.exceptions import (
    BusinessRuleError,
    ConflictError,
    ConversationNotFoundError,
)


async def test_start_pairs_roles_and_reuses_active(
    session: AsyncSession, bus: EventBus, mentor: User, mentee: User
):
    services = build_services(session, bus)

    conversation, created = await services.conversations.start_conversation(
        mentee, mentor.email, goal="Land a backend role"
    )
    again, created_again = await services.conversations.start_conversation(
        mentor, mentee.email
    )

    assert created is True
    assert conversation.mentor_id == mentor.id
    assert conversation.mentee_id == mentee.id
    assert conversation.status == ConversationStatus.ACTIVE
    assert created_again is False
    assert again.id == conversation.id


async def test_finished_conversation_is_not_reopened(
    session: AsyncSession, bus: EventBus, mentor: User, mentee: User
):
    services = build_services(session, bus)
    first, _ = await services.conversations.start_conversation(mentee, mentor.email)
    await services.conversations.update_status(
        first.id, mentor, ConversationStatus.COMPLETED
    )

    second, created = await services.conversations.start_conversation(
        mentee, mentor.email
    )

    assert created is True
    assert second.id != first.id


@pytest.mark.parametrize(
    "email", ["nobody@example.com", "mentee@example.com", "outsider@example.com"]
)
async def test_start_failures_share_one_message(
    session: AsyncSession, bus: EventBus, mentee: User, outsider: User, email: str
):
    services = build_services(session, bus)
    # Unknown email, self, and a same-role pair all look alike
    with pytest.raises(BusinessRuleError) as exc_info:
        await services.conversations.start_conversation(mentee, email)
    assert str(exc_info.value) == START_FAILED_MESSAGE


async def test_non_participant_gets_not_found(
    session: AsyncSession, bus: EventBus, conversation: Conversation, outsider: User
):
    services = build_services(session, bus)
    with pytest.raises(ConversationNotFoundError):
        await services.conversations.get_conversation_for_user(
            conversation.id, outsider
        )


async def test_status_change_only_from_active(
    session: AsyncSession, bus: EventBus, conversation: Conversation, mentee: User
):
    services = build_services(session, bus)
    updated = await services.conversations.update_status(
        conversation.id, mentee, ConversationStatus.CANCELLED
    )
    assert updated.status == ConversationStatus.CANCELLED

    with pytest.raises(ConflictError):
        await services.conversations.update_status(
            conversation.id, mentee, ConversationStatus.COMPLETED
        )


async def test_mentoring_plan_merges_and_publishes(
    session: AsyncSession, bus: EventBus, conversation: Conversation, mentor: User
):
    services = build_services(session, bus)
    recorder = EventRecorder(bus, CollaborationEvent.MENTORING_PLAN_UPDATED)

    await services.conversations.update_mentoring_plan(
        conversation.id, mentor, MentoringPlanUpdate(goals=["Ship portfolio"])
    )
    updated = await services.conversations.update_mentoring_plan(
        conversation.id, mentor, MentoringPlanUpdate(notes="Weekly on Mondays")
    )

    assert updated.mentoring_plan == {
        "goals": ["Ship portfolio"],
        "notes": "Weekly on Mondays",
    }
    assert len(recorder.events) == 2
    assert recorder.events[-1][1]["conversationId"] == str(conversation.id)

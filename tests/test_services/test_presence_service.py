from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from test_helpers import build_services

from mentorlink.core.clock import as_utc
from mentorlink.models import Conversation, User
from mentorlink.realtime.bus import EventBus
from mentorlink.repositories.presence_repository import PresenceRepository
from mentorlink.services.presence_service import PresenceService

T0 = datetime(2025, 1, 6, 12, 0, 0, tzinfo=timezone.utc)


async def test_unknown_participant_is_away(
    session: AsyncSession, conversation: Conversation, mentee: User
):
    presence = PresenceService(PresenceRepository(session), threshold_seconds=30)
    assert await presence.is_away(conversation.id, mentee.id, now=T0) is True


async def test_away_threshold_boundary(
    session: AsyncSession, conversation: Conversation, mentee: User
):
    presence = PresenceService(PresenceRepository(session), threshold_seconds=30)
    await presence.touch(conversation.id, mentee.id, now=T0)

    assert (
        await presence.is_away(conversation.id, mentee.id, now=T0 + timedelta(seconds=29))
        is False
    )
    assert (
        await presence.is_away(conversation.id, mentee.id, now=T0 + timedelta(seconds=31))
        is True
    )


async def test_touch_upserts_a_single_record(
    session: AsyncSession, conversation: Conversation, mentee: User
):
    repo = PresenceRepository(session)
    presence = PresenceService(repo, threshold_seconds=30)

    await presence.touch(conversation.id, mentee.id, now=T0)
    await presence.touch(conversation.id, mentee.id, now=T0 + timedelta(seconds=20))

    records = await repo.list_presence(conversation.id)
    assert len(records) == 1
    assert as_utc(records[0].last_active_at) == T0 + timedelta(seconds=20)


async def test_presence_is_per_conversation(
    session: AsyncSession, conversation: Conversation, mentor: User, outsider: User
):
    other = Conversation(mentor_id=mentor.id, mentee_id=outsider.id)
    session.add(other)
    await session.commit()
    presence = PresenceService(PresenceRepository(session), threshold_seconds=30)

    await presence.touch(conversation.id, mentor.id, now=T0)

    assert await presence.is_away(conversation.id, mentor.id, now=T0) is False
    assert await presence.is_away(other.id, mentor.id, now=T0) is True


async def test_conversation_presence_lists_both_participants(
    session: AsyncSession,
    bus: EventBus,
    conversation: Conversation,
    mentor: User,
    mentee: User,
):
    services = build_services(session, bus)
    await services.presence.touch(conversation.id, mentor.id)

    participants = await services.presence.get_conversation_presence(conversation)

    by_user = {p.user_id: p for p in participants}
    assert by_user[mentor.id].is_away is False
    assert by_user[mentee.id].is_away is True
    assert by_user[mentee.id].last_seen_at is None

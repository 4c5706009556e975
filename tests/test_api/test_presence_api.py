from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mentorlink.middleware import presence as presence_middleware
from mentorlink.models import Conversation, ConversationParticipant, User


async def participant_rows(session_maker, conversation_id):
    async with session_maker() as session:
        result = await session.execute(
            select(ConversationParticipant).filter(
                ConversationParticipant.conversation_id == conversation_id
            )
        )
        return result.scalars().all()


async def test_heartbeat_and_presence(
    test_client: AsyncClient,
    conversation: Conversation,
    mentor: User,
    mentee: User,
    mentee_headers: dict,
):
    beat = await test_client.post(
        f"/conversations/{conversation.id}/presence/heartbeat", headers=mentee_headers
    )
    assert beat.json() == {"ok": True}

    response = await test_client.get(
        f"/conversations/{conversation.id}/presence", headers=mentee_headers
    )
    participants = {
        p["user_id"]: p for p in response.json()["participants"]
    }
    assert participants[str(mentee.id)]["is_away"] is False
    assert participants[str(mentor.id)]["is_away"] is True


async def test_middleware_marks_caller_active(
    test_client: AsyncClient,
    db_test_session_manager: async_sessionmaker[AsyncSession],
    conversation: Conversation,
    mentor: User,
    mentor_headers: dict,
):
    response = await test_client.get(
        f"/conversations/{conversation.id}", headers=mentor_headers
    )
    assert response.status_code == 200

    rows = await participant_rows(db_test_session_manager, conversation.id)
    assert [row.user_id for row in rows] == [mentor.id]


async def test_middleware_skips_failed_requests(
    test_client: AsyncClient,
    db_test_session_manager: async_sessionmaker[AsyncSession],
    conversation: Conversation,
    outsider_headers: dict,
):
    response = await test_client.get(
        f"/conversations/{conversation.id}", headers=outsider_headers
    )
    assert response.status_code == 404
    assert await participant_rows(db_test_session_manager, conversation.id) == []


async def test_presence_failure_does_not_break_request(
    test_client: AsyncClient,
    conversation: Conversation,
    mentor_headers: dict,
    monkeypatch,
):
    async def broken_touch(*args, **kwargs):
        raise RuntimeError("presence store down")

    monkeypatch.setattr(
        presence_middleware.PresenceService, "touch", broken_touch
    )

    response = await test_client.get(
        f"/conversations/{conversation.id}", headers=mentor_headers
    )
    assert response.status_code == 200


async def test_event_stream_hidden_from_outsiders(
    test_app: FastAPI,
    test_client: AsyncClient,
    conversation: Conversation,
    outsider_headers: dict,
):
    response = await test_client.get(
        f"/conversations/{conversation.id}/events", headers=outsider_headers
    )
    assert response.status_code == 404
    assert len(test_app.state.connections) == 0

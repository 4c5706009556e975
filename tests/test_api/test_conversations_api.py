import uuid

from httpx import AsyncClient

from mentorlink.models import Conversation, User


async def test_start_then_reuse_conversation(
    test_client: AsyncClient,
    mentor: User,
    mentee_headers: dict,
    mentor_headers: dict,
):
    response = await test_client.post(
        "/conversations",
        json={"email": mentor.email, "goal": "Prepare for interviews"},
        headers=mentee_headers,
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["mentor_id"] == str(mentor.id)
    assert data["status"] == "ACTIVE"

    again = await test_client.post(
        "/conversations", json={"email": "mentee@example.com"}, headers=mentor_headers
    )
    assert again.status_code == 200
    assert again.json()["id"] == data["id"]

    listed = await test_client.get("/conversations", headers=mentor_headers)
    assert [c["id"] for c in listed.json()] == [data["id"]]


async def test_start_with_unknown_email_is_generic(
    test_client: AsyncClient, mentee_headers: dict
):
    response = await test_client.post(
        "/conversations", json={"email": "ghost@example.com"}, headers=mentee_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Unable to start conversation."


async def test_outsider_cannot_see_conversation(
    test_client: AsyncClient, conversation: Conversation, outsider_headers: dict
):
    response = await test_client.get(
        f"/conversations/{conversation.id}", headers=outsider_headers
    )
    assert response.status_code == 404

    missing = await test_client.get(
        f"/conversations/{uuid.uuid4()}", headers=outsider_headers
    )
    assert missing.status_code == 404


async def test_messages_and_status(
    test_client: AsyncClient,
    conversation: Conversation,
    mentee_headers: dict,
    mentor_headers: dict,
):
    sent = await test_client.post(
        f"/conversations/{conversation.id}/messages",
        json={"content": "Hi! Can we talk about my applications?"},
        headers=mentee_headers,
    )
    assert sent.status_code == 201
    assert sent.json()["sender_role"] == "mentee"

    messages = await test_client.get(
        f"/conversations/{conversation.id}/messages", headers=mentor_headers
    )
    assert len(messages.json()) == 1

    ended = await test_client.patch(
        f"/conversations/{conversation.id}",
        json={"status": "COMPLETED"},
        headers=mentor_headers,
    )
    assert ended.status_code == 200
    assert ended.json()["status"] == "COMPLETED"

    rejected = await test_client.post(
        f"/conversations/{conversation.id}/messages",
        json={"content": "one more thing"},
        headers=mentee_headers,
    )
    assert rejected.status_code == 400


async def test_mentoring_plan(
    test_client: AsyncClient, conversation: Conversation, mentor_headers: dict
):
    response = await test_client.put(
        f"/conversations/{conversation.id}/mentoring-plan",
        json={"goals": ["Apply to 10 companies"]},
        headers=mentor_headers,
    )
    assert response.status_code == 200
    assert response.json()["mentoring_plan"] == {"goals": ["Apply to 10 companies"]}

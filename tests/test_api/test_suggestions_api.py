from fastapi import FastAPI
from httpx import AsyncClient

from mentorlink.models import Conversation


def drain(connection) -> list[dict]:
    envelopes = []
    while not connection.queue.empty():
        envelopes.append(connection.queue.get_nowait())
    return envelopes


async def test_suggestion_accept_reaches_live_connection(
    test_app: FastAPI,
    test_client: AsyncClient,
    conversation: Conversation,
    mentor_headers: dict,
    mentee_headers: dict,
):
    row = (
        await test_client.post(
            f"/conversations/{conversation.id}/rows",
            json={"cells": {"company": "Acme", "position": "Engineer"}},
            headers=mentee_headers,
        )
    ).json()
    connection = test_app.state.connections.connect(conversation.id)

    created = await test_client.post(
        "/suggestions",
        json={"row_id": row["id"], "field": "status", "proposed_value": "Interview"},
        headers=mentor_headers,
    )
    assert created.status_code == 201, created.text
    suggestion = created.json()
    assert suggestion["old_value"] is None

    accepted = await test_client.post(
        f"/suggestions/{suggestion['id']}/accept", headers=mentee_headers
    )
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    envelopes = drain(connection)
    assert [e["type"] for e in envelopes] == [
        "connected",
        "suggestion.created",
        "suggestion.resolved",
        "application.updated",
        "activityLog.created",
    ]
    assert all(e["conversationId"] == str(conversation.id) for e in envelopes)
    assert envelopes[3]["application"]["cells"]["status"] == "Interview"

    again = await test_client.post(
        f"/suggestions/{suggestion['id']}/reject", headers=mentee_headers
    )
    assert again.status_code == 409


async def test_suggestion_roles(
    test_client: AsyncClient,
    conversation: Conversation,
    mentor_headers: dict,
    mentee_headers: dict,
):
    row = (
        await test_client.post(
            f"/conversations/{conversation.id}/rows",
            json={"cells": {"company": "Acme", "position": "Engineer"}},
            headers=mentor_headers,
        )
    ).json()

    by_mentee = await test_client.post(
        "/suggestions",
        json={"row_id": row["id"], "field": "notes", "proposed_value": "x"},
        headers=mentee_headers,
    )
    assert by_mentee.status_code == 403

    created = await test_client.post(
        "/suggestions",
        json={"row_id": row["id"], "field": "notes", "proposed_value": "Follow up"},
        headers=mentor_headers,
    )
    by_mentor = await test_client.post(
        f"/suggestions/{created.json()['id']}/accept", headers=mentor_headers
    )
    assert by_mentor.status_code == 403

    listed = await test_client.get(
        f"/suggestions?conversation_id={conversation.id}&status=pending",
        headers=mentee_headers,
    )
    assert [s["field"] for s in listed.json()] == ["notes"]

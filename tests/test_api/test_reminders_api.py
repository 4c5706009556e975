import pytest
from httpx import AsyncClient

from mentorlink.core.config import settings
from mentorlink.models import Conversation


@pytest.fixture
def sweep_token(monkeypatch) -> str:
    monkeypatch.setattr(settings, "REMINDER_SWEEP_TOKEN", "sweep-secret")
    return "sweep-secret"


async def create_reminder(client, conversation, headers, due_at="2024-01-02T10:00:00Z"):
    response = await client.post(
        "/reminders",
        json={
            "conversation_id": str(conversation.id),
            "type": "follow-up",
            "due_at": due_at,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_check_due_requires_token(
    test_client: AsyncClient, sweep_token: str
):
    missing = await test_client.post("/reminders/check-due")
    assert missing.status_code == 403
    wrong = await test_client.post(
        "/reminders/check-due", headers={"X-Sweep-Token": "nope"}
    )
    assert wrong.status_code == 403


async def test_check_due_fires_once(
    test_client: AsyncClient,
    conversation: Conversation,
    mentee_headers: dict,
    mentor_headers: dict,
    sweep_token: str,
):
    reminder = await create_reminder(test_client, conversation, mentee_headers)
    assert reminder["status"] == "pending"

    first = await test_client.post(
        "/reminders/check-due", headers={"X-Sweep-Token": sweep_token}
    )
    assert first.status_code == 200
    assert first.json() == {"processed": 1, "errors": 0, "totalDue": 1}

    second = await test_client.post(
        "/reminders/check-due", headers={"X-Sweep-Token": sweep_token}
    )
    assert second.json() == {"processed": 0, "errors": 0, "totalDue": 0}

    notifications = await test_client.get("/notifications", headers=mentor_headers)
    [notification] = notifications.json()["notifications"]
    assert notification["type"] == "reminder_due"
    assert notification["meta"]["reminderId"] == reminder["id"]

    listed = await test_client.get(
        f"/reminders?conversation_id={conversation.id}&status=triggered",
        headers=mentee_headers,
    )
    assert [r["id"] for r in listed.json()] == [reminder["id"]]

    locked = await test_client.patch(
        f"/reminders/{reminder['id']}",
        json={"type": "interview"},
        headers=mentee_headers,
    )
    assert locked.status_code == 409


async def test_check_due_liveness(test_client: AsyncClient):
    response = await test_client.get("/reminders/check-due")
    assert response.status_code == 200
    assert response.json()["inProcessScheduler"] is False


async def test_calendar_export(
    test_client: AsyncClient,
    conversation: Conversation,
    mentee_headers: dict,
    outsider_headers: dict,
):
    reminder = await create_reminder(
        test_client, conversation, mentee_headers, due_at="2030-06-01T14:00:00Z"
    )

    response = await test_client.get(
        f"/reminders/{reminder['id']}/calendar", headers=mentee_headers
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert (
        f'filename="reminder-{reminder["id"]}.ics"'
        in response.headers["content-disposition"]
    )
    assert "DTSTART:20300601T140000Z" in response.text

    hidden = await test_client.get(
        f"/reminders/{reminder['id']}/calendar", headers=outsider_headers
    )
    assert hidden.status_code == 404

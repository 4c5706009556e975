import asyncio
import json

import pytest

from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import FORWARDED_EVENTS, CollaborationEvent
from mentorlink.realtime.gateway import ConnectionRegistry, format_sse, stream_events


def drain(connection) -> list[dict]:
    items = []
    while not connection.queue.empty():
        items.append(connection.queue.get_nowait())
    return items


async def test_connected_envelope_is_first():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    connection = registry.connect("conv-1")

    bus.publish(
        CollaborationEvent.MESSAGE_NEW, {"conversationId": "conv-1", "message": {}}
    )

    envelopes = drain(connection)
    assert envelopes[0] == {"type": "connected", "conversationId": "conv-1"}
    assert envelopes[1]["type"] == "message:new"


async def test_connection_subscribes_to_every_forwarded_event():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    registry.connect("conv-1")

    for event_name in FORWARDED_EVENTS:
        assert bus.subscriber_count(event_name) == 1


async def test_events_never_cross_conversations():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    first = registry.connect("conv-1")
    second = registry.connect("conv-2")
    drain(first)
    drain(second)

    bus.publish(
        CollaborationEvent.APPLICATION_UPDATED,
        {"conversationId": "conv-2", "applicationId": "row-9"},
    )

    assert drain(first) == []
    received = drain(second)
    assert len(received) == 1
    assert received[0]["conversationId"] == "conv-2"
    assert received[0]["applicationId"] == "row-9"


async def test_events_without_conversation_are_not_forwarded():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    connection = registry.connect("conv-1")
    drain(connection)

    bus.publish(CollaborationEvent.NOTIFICATION_NEW, {"conversationId": None})

    assert drain(connection) == []


async def test_disconnect_removes_all_subscriptions():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    connection = registry.connect("conv-1")

    assert registry.disconnect(connection.id) is True
    assert registry.disconnect(connection.id) is False
    assert len(registry) == 0
    assert bus.subscriber_count() == 0

    bus.publish(CollaborationEvent.MESSAGE_NEW, {"conversationId": "conv-1"})
    assert [e["type"] for e in drain(connection)] == ["connected"]


async def test_slow_consumer_is_dropped_when_queue_is_full():
    bus = EventBus()
    registry = ConnectionRegistry(bus, queue_size=2)
    connection = registry.connect("conv-1")

    for _ in range(3):
        bus.publish(CollaborationEvent.MESSAGE_NEW, {"conversationId": "conv-1"})

    assert connection.closed is True
    assert registry.get(connection.id) is None
    assert bus.subscriber_count() == 0


async def test_close_all_empties_the_registry():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    registry.connect("conv-1")
    registry.connect("conv-1")
    assert len(registry.connections_for("conv-1")) == 2

    registry.close_all()

    assert len(registry) == 0
    assert bus.subscriber_count() == 0


def test_format_sse_frames_json_envelope():
    frame = format_sse({"type": "connected", "conversationId": "abc"})
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame[len("data: ") :]) == {
        "type": "connected",
        "conversationId": "abc",
    }


async def test_stream_yields_frames_then_cleans_up_on_disconnect():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    connection = registry.connect("conv-1")
    bus.publish(
        CollaborationEvent.SUGGESTION_CREATED,
        {"conversationId": "conv-1", "suggestionId": "s1"},
    )

    state = {"disconnected": False}

    async def is_disconnected():
        return state["disconnected"]

    stream = stream_events(registry, connection, is_disconnected, keepalive_seconds=5)
    first = await stream.__anext__()
    second = await stream.__anext__()
    assert json.loads(first[len("data: ") :])["type"] == "connected"
    assert json.loads(second[len("data: ") :])["suggestionId"] == "s1"

    state["disconnected"] = True
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()

    assert registry.get(connection.id) is None
    assert bus.subscriber_count() == 0


async def test_stream_sends_keepalive_when_idle():
    bus = EventBus()
    registry = ConnectionRegistry(bus)
    connection = registry.connect("conv-1")
    drain(connection)

    async def is_disconnected():
        return False

    stream = stream_events(
        registry, connection, is_disconnected, keepalive_seconds=0.01
    )
    frame = await asyncio.wait_for(stream.__anext__(), timeout=1)
    assert frame == ": keep-alive\n\n"

    await stream.aclose()
    assert registry.get(connection.id) is None

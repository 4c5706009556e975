from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent


def test_publish_delivers_in_registration_order():
    bus = EventBus()
    calls = []
    bus.subscribe("application.updated", lambda name, payload: calls.append("first"))
    bus.subscribe("application.updated", lambda name, payload: calls.append("second"))

    delivered = bus.publish("application.updated", {"conversationId": "c1"})

    assert delivered == 2
    assert calls == ["first", "second"]


def test_publish_without_subscribers_is_dropped():
    bus = EventBus()
    assert bus.publish("message:new", {"conversationId": "c1"}) == 0

    # Nothing was buffered for a late subscriber
    received = []
    bus.subscribe("message:new", lambda name, payload: received.append(payload))
    assert received == []


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(
        "message:new", lambda name, payload: received.append(payload)
    )

    bus.publish("message:new", {"n": 1})
    unsubscribe()
    bus.publish("message:new", {"n": 2})

    assert received == [{"n": 1}]
    assert bus.subscriber_count() == 0


def test_unsubscribe_twice_is_harmless():
    bus = EventBus()
    unsubscribe = bus.subscribe("message:new", lambda name, payload: None)
    unsubscribe()
    unsubscribe()
    assert bus.subscriber_count("message:new") == 0


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    received = []

    def broken(name, payload):
        raise RuntimeError("boom")

    bus.subscribe("suggestion.created", broken)
    bus.subscribe("suggestion.created", lambda name, payload: received.append(name))

    # The publisher never sees the handler's error
    assert bus.publish("suggestion.created", {}) == 2
    assert received == ["suggestion.created"]


def test_enum_and_string_names_are_the_same_event():
    bus = EventBus()
    received = []
    bus.subscribe(
        CollaborationEvent.SUGGESTION_RESOLVED,
        lambda name, payload: received.append(name),
    )

    bus.publish("suggestion.resolved", {})

    assert received == ["suggestion.resolved"]
    assert bus.subscriber_count("suggestion.resolved") == 1


def test_handler_may_unsubscribe_itself_during_delivery():
    bus = EventBus()
    calls = []
    handles = {}

    def once(name, payload):
        calls.append("once")
        handles["once"]()

    handles["once"] = bus.subscribe("message:new", once)
    bus.subscribe("message:new", lambda name, payload: calls.append("always"))

    bus.publish("message:new", {})
    bus.publish("message:new", {})

    assert calls == ["once", "always", "always"]

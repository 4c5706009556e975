import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict[str, Any]], None]


def _event_key(event_name) -> str:
    # Enum members and their plain string values address the same handlers
    return str(getattr(event_name, "value", event_name))


class EventBus:
    """In-process publish/subscribe keyed by event name.

    Delivery is synchronous and in registration order. Nothing is buffered:
    an event published with no subscribers is gone.
    """

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_name, handler: Handler) -> Callable[[], None]:
        """Registers a handler and returns a callable that removes it again."""
        key = _event_key(event_name)
        self._handlers[key].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[key]

        return unsubscribe

    def publish(self, event_name, payload: dict[str, Any]) -> int:
        """Delivers to current subscribers and returns how many were called.

        A failing handler is logged and skipped; the publisher never sees it.
        """
        key = _event_key(event_name)
        # Copy so handlers may unsubscribe while being called
        handlers = list(self._handlers.get(key, ()))
        for handler in handlers:
            try:
                handler(key, payload)
            except Exception as e:
                logger.error(
                    f"Event handler {handler!r} failed for '{key}': {e}",
                    exc_info=True,
                )
        logger.debug(f"Published '{key}' to {len(handlers)} handler(s)")
        return len(handlers)

    def subscriber_count(self, event_name=None) -> int:
        if event_name is not None:
            return len(self._handlers.get(_event_key(event_name), ()))
        return sum(len(handlers) for handlers in self._handlers.values())

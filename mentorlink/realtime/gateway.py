import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

from fastapi.encoders import jsonable_encoder

from .bus import EventBus
from .events import FORWARDED_EVENTS

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One open live stream, bound to exactly one conversation."""

    id: str
    conversation_id: str
    queue: asyncio.Queue
    unsubscribers: list[Callable[[], None]] = field(default_factory=list)
    closed: bool = False


class ConnectionRegistry:
    """Maps connection id -> conversation id plus its bus subscriptions.

    Teardown is a single lookup followed by a bulk unsubscribe.
    """

    def __init__(self, bus: EventBus, queue_size: int = 256):
        self.bus = bus
        self.queue_size = queue_size
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def connections_for(self, conversation_id) -> list[Connection]:
        conversation_id = str(conversation_id)
        return [
            connection
            for connection in self._connections.values()
            if connection.conversation_id == conversation_id
        ]

    def connect(self, conversation_id) -> Connection:
        """Registers a connection; the "connected" envelope is queued first."""
        connection = Connection(
            id=str(uuid.uuid4()),
            conversation_id=str(conversation_id),
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        connection.queue.put_nowait(
            {"type": "connected", "conversationId": connection.conversation_id}
        )
        for event_name in FORWARDED_EVENTS:
            connection.unsubscribers.append(
                self.bus.subscribe(event_name, self._make_handler(connection))
            )
        self._connections[connection.id] = connection
        logger.info(
            f"Live connection {connection.id} opened for conversation "
            f"{connection.conversation_id} ({len(self._connections)} open)"
        )
        return connection

    def disconnect(self, connection_id: str) -> bool:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        connection.closed = True
        for unsubscribe in connection.unsubscribers:
            unsubscribe()
        connection.unsubscribers.clear()
        logger.info(
            f"Live connection {connection_id} closed for conversation "
            f"{connection.conversation_id} ({len(self._connections)} open)"
        )
        return True

    def close_all(self) -> None:
        for connection_id in list(self._connections):
            self.disconnect(connection_id)

    def _make_handler(self, connection: Connection):
        def handle(event_name: str, payload: dict[str, Any]) -> None:
            if str(payload.get("conversationId")) != connection.conversation_id:
                return
            if connection.closed:
                return
            envelope = {"type": event_name, **payload}
            envelope["conversationId"] = connection.conversation_id
            try:
                connection.queue.put_nowait(envelope)
                logger.debug(f"Queued {event_name} for connection {connection.id}")
            except asyncio.QueueFull:
                logger.warning(
                    f"Live connection {connection.id} is not keeping up; dropping it"
                )
                self.disconnect(connection.id)

        return handle


def format_sse(envelope: dict[str, Any]) -> str:
    return f"data: {json.dumps(jsonable_encoder(envelope))}\n\n"


async def stream_events(
    registry: ConnectionRegistry,
    connection: Connection,
    is_disconnected: Callable[[], Any],
    keepalive_seconds: float = 15.0,
) -> AsyncIterator[str]:
    """Yields SSE frames for a connection until the client goes away.

    The connection is always removed from the registry on exit.
    """
    try:
        while not connection.closed:
            if await is_disconnected():
                break
            try:
                envelope = await asyncio.wait_for(
                    connection.queue.get(), timeout=keepalive_seconds
                )
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(envelope)
    finally:
        registry.disconnect(connection.id)

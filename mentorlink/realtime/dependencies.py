from fastapi import Request

from .bus import EventBus
from .gateway import ConnectionRegistry


def get_event_bus(request: Request) -> EventBus:
    """The application's bus, created once in create_app."""
    return request.app.state.event_bus


def get_connection_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.connections

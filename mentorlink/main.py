import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from mentorlink.api.routes import (
    board,
    conversations,
    events,
    notifications,
    presence,
    reminders,
    suggestions,
)
from mentorlink.auth_config import auth_backend, fastapi_users
from mentorlink.core.clock import utcnow
from mentorlink.core.config import settings
from mentorlink.db import async_session_maker, check_database_health, get_db_session
from mentorlink.middleware.presence import ConversationPresenceMiddleware
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.gateway import ConnectionRegistry
from mentorlink.schemas.user import UserCreate, UserRead, UserUpdate
from mentorlink.services.migration_service import run_migrations
from mentorlink.services.reminder_scheduler import (
    shutdown_reminder_scheduler,
    start_reminder_scheduler,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting application...")
    try:
        await run_migrations()
        await check_database_health()
        logger.info("Database health check passed - application ready")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        logger.error("Application startup aborted due to database issues")
        raise

    if settings.REMINDER_SWEEP_INTERVAL_SECONDS > 0:
        app.state.reminder_scheduler = start_reminder_scheduler(
            async_session_maker,
            app.state.event_bus,
            settings.REMINDER_SWEEP_INTERVAL_SECONDS,
        )

    yield

    logger.info("Application shutting down...")
    shutdown_reminder_scheduler(getattr(app.state, "reminder_scheduler", None))
    app.state.connections.close_all()


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {"status": "healthy", "timestamp": utcnow().isoformat()}


def create_app() -> FastAPI:
    app = FastAPI(title="MentorLink", lifespan=lifespan)

    # One bus and one connection registry per application instance
    app.state.event_bus = EventBus()
    app.state.connections = ConnectionRegistry(
        app.state.event_bus, queue_size=settings.SSE_QUEUE_SIZE
    )
    app.state.reminder_scheduler = None

    app.add_middleware(ConversationPresenceMiddleware, session_factory=get_db_session)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.include_router(
        fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
    )
    app.include_router(
        fastapi_users.get_register_router(UserRead, UserCreate),
        prefix="/auth",
        tags=["auth"],
    )
    app.include_router(
        fastapi_users.get_users_router(UserRead, UserUpdate),
        prefix="/users",
        tags=["users"],
    )
    app.include_router(conversations.conversations_router_instance)
    app.include_router(board.board_router_instance)
    app.include_router(presence.presence_router_instance)
    app.include_router(events.events_router_instance)
    app.include_router(suggestions.suggestions_router_instance)
    app.include_router(reminders.reminders_router_instance)
    app.include_router(notifications.notifications_router_instance)
    app.add_api_route("/health", health_check, methods=["GET"], tags=["health"])

    return app


app = create_app()

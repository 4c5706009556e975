import logging
import re
import uuid
from typing import AsyncGenerator, Callable, Optional

import jwt
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware

from mentorlink.auth_config import AUTH_COOKIE_NAME
from mentorlink.core.config import settings
from mentorlink.db import get_db_session
from mentorlink.repositories.presence_repository import PresenceRepository
from mentorlink.services.presence_service import PresenceService

logger = logging.getLogger(__name__)

CONVERSATION_PATH = re.compile(
    r"^/conversations/(?P<conversation_id>[0-9a-fA-F-]{36})(?:/|$)"
)


class ConversationPresenceMiddleware(BaseHTTPMiddleware):
    """Marks the caller active in a conversation after each successful request under it"""

    def __init__(
        self,
        app,
        session_factory: Callable[[], AsyncGenerator[AsyncSession, None]],
    ):
        super().__init__(app)
        self.session_factory = session_factory

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # The event stream is long-lived; its heartbeat is the explicit endpoint
        if 200 <= response.status_code < 400 and not request.url.path.endswith(
            "/events"
        ):
            await self._update_presence(request)

        return response

    async def _update_presence(self, request: Request):
        match = CONVERSATION_PATH.match(request.url.path)
        if not match:
            return
        try:
            conversation_id = uuid.UUID(match.group("conversation_id"))
            user_id = self._get_user_id_from_request(request)
            if user_id is None:
                return
            await self._touch(conversation_id, user_id, request)
        except Exception as e:
            # Never let presence updates break the main request
            logger.warning(f"Failed to update conversation presence: {e}")

    def _get_user_id_from_request(self, request: Request) -> Optional[uuid.UUID]:
        auth_cookie = request.cookies.get(AUTH_COOKIE_NAME)
        if not auth_cookie:
            return None
        try:
            payload = jwt.decode(
                auth_cookie,
                settings.SECRET,
                algorithms=[settings.ALGORITHM],
                options={"verify_aud": False},
            )
            return uuid.UUID(payload["sub"])
        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.debug(f"Could not extract user ID from request: {e}")
            return None

    async def _touch(
        self, conversation_id: uuid.UUID, user_id: uuid.UUID, request: Request
    ):
        # Tests swap the session dependency; follow the override when present
        session_factory = request.app.dependency_overrides.get(
            get_db_session, self.session_factory
        )
        async for session in session_factory():
            presence_service = PresenceService(PresenceRepository(session))
            await presence_service.touch(conversation_id, user_id)
            break

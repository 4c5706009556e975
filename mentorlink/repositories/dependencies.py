from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.db import get_db_session

from .board_repository import BoardRepository
from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository
from .notification_repository import NotificationRepository
from .presence_repository import PresenceRepository
from .reminder_repository import ReminderRepository
from .suggestion_repository import SuggestionRepository
from .user_repository import UserRepository


def get_conversation_repository(
    session: AsyncSession = Depends(get_db_session),
) -> ConversationRepository:
    return ConversationRepository(session)


def get_user_repository(
    session: AsyncSession = Depends(get_db_session),
) -> UserRepository:
    """Dependency provider for UserRepository."""
    return UserRepository(session)


def get_message_repository(
    session: AsyncSession = Depends(get_db_session),
) -> MessageRepository:
    """Dependency provider for MessageRepository."""
    return MessageRepository(session)


def get_presence_repository(
    session: AsyncSession = Depends(get_db_session),
) -> PresenceRepository:
    return PresenceRepository(session)


def get_board_repository(
    session: AsyncSession = Depends(get_db_session),
) -> BoardRepository:
    return BoardRepository(session)


def get_suggestion_repository(
    session: AsyncSession = Depends(get_db_session),
) -> SuggestionRepository:
    return SuggestionRepository(session)


def get_notification_repository(
    session: AsyncSession = Depends(get_db_session),
) -> NotificationRepository:
    return NotificationRepository(session)


def get_reminder_repository(
    session: AsyncSession = Depends(get_db_session),
) -> ReminderRepository:
    return ReminderRepository(session)

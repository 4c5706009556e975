from fastapi import Depends

from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.dependencies import get_event_bus
from mentorlink.repositories.board_repository import BoardRepository
from mentorlink.repositories.conversation_repository import ConversationRepository
from mentorlink.repositories.dependencies import (
    get_board_repository,
    get_conversation_repository,
    get_message_repository,
    get_notification_repository,
    get_presence_repository,
    get_reminder_repository,
    get_suggestion_repository,
    get_user_repository,
)
from mentorlink.repositories.message_repository import MessageRepository
from mentorlink.repositories.notification_repository import NotificationRepository
from mentorlink.repositories.presence_repository import PresenceRepository
from mentorlink.repositories.reminder_repository import ReminderRepository
from mentorlink.repositories.suggestion_repository import SuggestionRepository
from mentorlink.repositories.user_repository import UserRepository

from .board_service import BoardService
from .conversation_service import ConversationService
from .message_service import MessageService
from .notification_service import NotificationService
from .presence_service import PresenceService
from .reminder_service import ReminderService
from .suggestion_service import SuggestionService


def get_conversation_service(
    conv_repo: ConversationRepository = Depends(get_conversation_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    bus: EventBus = Depends(get_event_bus),
) -> ConversationService:
    """Provides an instance of the ConversationService with its dependencies."""
    return ConversationService(
        conversation_repository=conv_repo, user_repository=user_repo, event_bus=bus
    )


def get_presence_service(
    presence_repo: PresenceRepository = Depends(get_presence_repository),
) -> PresenceService:
    return PresenceService(presence_repo)


def get_notification_service(
    notification_repo: NotificationRepository = Depends(get_notification_repository),
    bus: EventBus = Depends(get_event_bus),
) -> NotificationService:
    return NotificationService(notification_repo, bus)


def get_message_service(
    msg_repo: MessageRepository = Depends(get_message_repository),
    conv_service: ConversationService = Depends(get_conversation_service),
    presence_service: PresenceService = Depends(get_presence_service),
    notification_service: NotificationService = Depends(get_notification_service),
    bus: EventBus = Depends(get_event_bus),
) -> MessageService:
    return MessageService(
        message_repository=msg_repo,
        conversation_service=conv_service,
        presence_service=presence_service,
        notification_service=notification_service,
        event_bus=bus,
    )


def get_board_service(
    board_repo: BoardRepository = Depends(get_board_repository),
    conv_service: ConversationService = Depends(get_conversation_service),
    bus: EventBus = Depends(get_event_bus),
) -> BoardService:
    return BoardService(
        board_repository=board_repo, conversation_service=conv_service, event_bus=bus
    )


def get_suggestion_service(
    suggestion_repo: SuggestionRepository = Depends(get_suggestion_repository),
    board_service: BoardService = Depends(get_board_service),
    presence_service: PresenceService = Depends(get_presence_service),
    notification_service: NotificationService = Depends(get_notification_service),
    bus: EventBus = Depends(get_event_bus),
) -> SuggestionService:
    return SuggestionService(
        suggestion_repository=suggestion_repo,
        board_service=board_service,
        presence_service=presence_service,
        notification_service=notification_service,
        event_bus=bus,
    )


def get_reminder_service(
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    conv_service: ConversationService = Depends(get_conversation_service),
    board_repo: BoardRepository = Depends(get_board_repository),
    notification_service: NotificationService = Depends(get_notification_service),
    bus: EventBus = Depends(get_event_bus),
) -> ReminderService:
    return ReminderService(
        reminder_repository=reminder_repo,
        conversation_service=conv_service,
        board_repository=board_repo,
        notification_service=notification_service,
        event_bus=bus,
    )

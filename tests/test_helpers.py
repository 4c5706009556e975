from types import SimpleNamespace

from sqlalchemy.ext.asyncio import AsyncSession

from mentorlink.realtime.bus import EventBus
from mentorlink.repositories.board_repository import BoardRepository
from mentorlink.repositories.conversation_repository import ConversationRepository
from mentorlink.repositories.message_repository import MessageRepository
from mentorlink.repositories.notification_repository import NotificationRepository
from mentorlink.repositories.presence_repository import PresenceRepository
from mentorlink.repositories.reminder_repository import ReminderRepository
from mentorlink.repositories.suggestion_repository import SuggestionRepository
from mentorlink.repositories.user_repository import UserRepository
from mentorlink.services.board_service import BoardService
from mentorlink.services.conversation_service import ConversationService
from mentorlink.services.message_service import MessageService
from mentorlink.services.notification_service import NotificationService
from mentorlink.services.presence_service import PresenceService
from mentorlink.services.reminder_service import ReminderService
from mentorlink.services.suggestion_service import SuggestionService


def build_services(session: AsyncSession, bus: EventBus) -> SimpleNamespace:
    """Wires every service against one session, the way the request dependencies do."""
    conversations = ConversationService(
        ConversationRepository(session), UserRepository(session), bus
    )
    presence = PresenceService(PresenceRepository(session))
    notifications = NotificationService(NotificationRepository(session), bus)
    boards = BoardService(BoardRepository(session), conversations, bus)
    return SimpleNamespace(
        conversations=conversations,
        presence=presence,
        notifications=notifications,
        boards=boards,
        messages=MessageService(
            MessageRepository(session), conversations, presence, notifications, bus
        ),
        suggestions=SuggestionService(
            SuggestionRepository(session), boards, presence, notifications, bus
        ),
        reminders=ReminderService(
            ReminderRepository(session),
            conversations,
            BoardRepository(session),
            notifications,
            bus,
        ),
    )


class EventRecorder:
    """Subscribes to a set of events and keeps (name, payload) pairs in order."""

    def __init__(self, bus: EventBus, *event_names):
        self.events: list[tuple[str, dict]] = []
        for event_name in event_names:
            bus.subscribe(event_name, self._record)

    def _record(self, event_name, payload):
        self.events.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, event_name) -> list[dict]:
        key = getattr(event_name, "value", event_name)
        return [payload for name, payload in self.events if name == key]

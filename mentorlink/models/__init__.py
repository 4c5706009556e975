# Makes 'models' a package and simplifies imports

from .base import BaseModel, metadata
from .board import (
    ApplicationBoard,
    ApplicationRow,
    BoardColumn,
    RowActivityEntry,
    RowHistoryEntry,
)
from .conversation import Conversation
from .message import Message
from .notification import Notification
from .participant import ConversationParticipant
from .reminder import Reminder
from .suggestion import Suggestion
from .user import User

__all__ = [
    "BaseModel",
    "metadata",
    "User",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "ApplicationBoard",
    "BoardColumn",
    "ApplicationRow",
    "RowHistoryEntry",
    "RowActivityEntry",
    "Suggestion",
    "Notification",
    "Reminder",
]

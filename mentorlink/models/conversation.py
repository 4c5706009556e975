from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Index,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid

from mentorlink.schemas.conversation import ConversationStatus

from .base import BaseModel


class Conversation(BaseModel):
    __tablename__ = "conversations"

    mentor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    mentee_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    status = Column(
        SQLAlchemyEnum(ConversationStatus),
        nullable=False,
        default=ConversationStatus.ACTIVE,
    )
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    last_message_preview = Column(Text, nullable=True)
    goal = Column(Text, nullable=True)
    mentoring_plan = Column(JSON, nullable=True)

    mentor = relationship(
        "User", back_populates="mentoring_conversations", foreign_keys=[mentor_id]
    )
    mentee = relationship(
        "User", back_populates="mentee_conversations", foreign_keys=[mentee_id]
    )
    messages = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan"
    )
    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )

    # At most one ACTIVE conversation per pair; history accumulates
    __table_args__ = (
        Index(
            "uq_conversation_active_pair",
            "mentor_id",
            "mentee_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    def participant_ids(self) -> tuple:
        return (self.mentor_id, self.mentee_id)

    def role_of(self, user_id):
        """Role a user plays in this conversation, or None if not a participant."""
        if user_id == self.mentor_id:
            return "mentor"
        if user_id == self.mentee_id:
            return "mentee"
        return None

    def other_participant(self, user_id):
        return self.mentee_id if user_id == self.mentor_id else self.mentor_id

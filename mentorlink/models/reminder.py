from sqlalchemy import Column, DateTime, Enum as SQLAlchemyEnum, ForeignKey, Index
from sqlalchemy.types import Uuid

from mentorlink.schemas.reminder import ReminderStatus, ReminderType

from .base import BaseModel


class Reminder(BaseModel):
    __tablename__ = "reminders"

    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False
    )
    # Cleared when the board holding the row is deleted
    row_id = Column(
        Uuid(as_uuid=True), ForeignKey("application_rows.id"), nullable=True
    )
    type = Column(SQLAlchemyEnum(ReminderType), nullable=False)
    due_at = Column(DateTime(timezone=True), nullable=False)
    created_by_user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    status = Column(
        SQLAlchemyEnum(ReminderStatus),
        nullable=False,
        default=ReminderStatus.PENDING,
    )
    triggered_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_reminders_status_due", "status", "due_at"),)

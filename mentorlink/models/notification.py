from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Index,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid

from mentorlink.schemas.notification import NotificationType

from .base import BaseModel


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=True
    )
    type = Column(SQLAlchemyEnum(NotificationType), nullable=False)
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    link = Column(Text, nullable=True)
    meta = Column(JSON, nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="notifications", foreign_keys=[user_id])

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read_at"),
    )

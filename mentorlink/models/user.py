import uuid

from fastapi_users.db import SQLAlchemyBaseUserTable
from sqlalchemy import Column, Enum as SQLAlchemyEnum, Text
from sqlalchemy.orm import relationship

from mentorlink.schemas.user import UserRole

from .base import BaseModel


# SQLAlchemyBaseUserTable requires a specific type for the ID. Uuid works.
class User(SQLAlchemyBaseUserTable[uuid.UUID], BaseModel):
    __tablename__ = "users"

    # email, hashed_password, is_active, is_superuser, is_verified are from SQLAlchemyBaseUserTable
    username = Column(
        Text,
        unique=True,
        nullable=False,
        default=lambda: f"user_{uuid.uuid4()}",
    )
    role = Column(
        SQLAlchemyEnum(UserRole), nullable=False, default=UserRole.MENTEE
    )

    mentoring_conversations = relationship(
        "Conversation",
        back_populates="mentor",
        foreign_keys="Conversation.mentor_id",
    )
    mentee_conversations = relationship(
        "Conversation",
        back_populates="mentee",
        foreign_keys="Conversation.mentee_id",
    )
    notifications = relationship(
        "Notification",
        back_populates="user",
        foreign_keys="Notification.user_id",
    )

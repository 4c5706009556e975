from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid

from mentorlink.schemas.suggestion import SuggestionStatus

from .base import BaseModel


class Suggestion(BaseModel):
    __tablename__ = "suggestions"

    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False
    )
    row_id = Column(
        Uuid(as_uuid=True), ForeignKey("application_rows.id"), nullable=False
    )
    field = Column(String(64), nullable=False)
    old_value = Column(JSON, nullable=True)
    proposed_value = Column(JSON, nullable=True)
    proposed_by_role = Column(String(16), nullable=False)
    proposed_by_user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    status = Column(
        SQLAlchemyEnum(SuggestionStatus),
        nullable=False,
        default=SuggestionStatus.PENDING,
    )
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    row = relationship("ApplicationRow", back_populates="suggestions")

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid

from mentorlink.core.clock import utcnow
from mentorlink.schemas.board import ColumnType

from .base import BaseModel


class ApplicationBoard(BaseModel):
    __tablename__ = "application_boards"

    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False, unique=True
    )

    columns = relationship(
        "BoardColumn",
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="BoardColumn.order",
    )
    rows = relationship(
        "ApplicationRow", back_populates="board", cascade="all, delete-orphan"
    )


class BoardColumn(BaseModel):
    """A column keeps its id across schema edits; its key may be reused."""

    __tablename__ = "board_columns"

    board_id = Column(
        Uuid(as_uuid=True), ForeignKey("application_boards.id"), nullable=False
    )
    key = Column(String(64), nullable=False)
    name = Column(Text, nullable=False)
    type = Column(SQLAlchemyEnum(ColumnType), nullable=False)
    required = Column(Boolean, nullable=False, default=False)
    options = Column(JSON, nullable=True)
    width = Column(Integer, nullable=True)
    order = Column(Integer, nullable=False, default=0)

    board = relationship("ApplicationBoard", back_populates="columns")

    __table_args__ = (
        UniqueConstraint("board_id", "key", name="uq_board_column_key"),
    )


class ApplicationRow(BaseModel):
    __tablename__ = "application_rows"

    board_id = Column(
        Uuid(as_uuid=True), ForeignKey("application_boards.id"), nullable=False
    )
    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False
    )
    created_by_user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    # Sparse map of column key -> value; dates are ISO strings
    cells = Column(JSON, nullable=False, default=dict)
    tags = Column(JSON, nullable=False, default=list)

    board = relationship("ApplicationBoard", back_populates="rows")
    history = relationship(
        "RowHistoryEntry", back_populates="row", cascade="all, delete-orphan"
    )
    activity = relationship(
        "RowActivityEntry", back_populates="row", cascade="all, delete-orphan"
    )
    suggestions = relationship(
        "Suggestion", back_populates="row", cascade="all, delete-orphan"
    )


class RowHistoryEntry(BaseModel):
    __tablename__ = "row_history"

    row_id = Column(
        Uuid(as_uuid=True), ForeignKey("application_rows.id"), nullable=False
    )
    field = Column(String(64), nullable=False)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    changed_by = Column(String(16), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    row = relationship("ApplicationRow", back_populates="history")


class RowActivityEntry(BaseModel):
    __tablename__ = "row_activity"

    row_id = Column(
        Uuid(as_uuid=True), ForeignKey("application_rows.id"), nullable=False
    )
    author_role = Column(String(16), nullable=False)
    message = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    row = relationship("ApplicationRow", back_populates="activity")

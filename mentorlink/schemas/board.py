import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ColumnType(str, enum.Enum):
    TEXT = "text"
    LONGTEXT = "longtext"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    CHECKBOX = "checkbox"


class ColumnDefinition(BaseModel):
    key: str = Field(min_length=1, max_length=64, pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    name: str = Field(min_length=1, max_length=200)
    type: ColumnType
    required: bool = False
    options: list[str] | None = None
    width: int | None = Field(default=None, ge=40, le=2000)


class ColumnsUpdateRequest(BaseModel):
    columns: list[ColumnDefinition] = Field(min_length=1)


class ColumnResponse(BaseModel):
    id: UUID
    key: str
    name: str
    type: ColumnType
    required: bool
    options: list[str] | None = None
    width: int | None = None
    order: int

    model_config = ConfigDict(from_attributes=True)


class BoardResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    columns: list[ColumnResponse]

    model_config = ConfigDict(from_attributes=True)


class Tag(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    label: str = Field(min_length=1, max_length=64)
    color: str = Field(default="#64748b", max_length=32)


class TagsUpdateRequest(BaseModel):
    tags: list[Tag]


class RowCreateRequest(BaseModel):
    cells: dict[str, Any] = Field(default_factory=dict)


class RowUpdateRequest(BaseModel):
    cells: dict[str, Any]


class RowResponse(BaseModel):
    id: UUID
    board_id: UUID
    conversation_id: UUID
    created_by_user_id: UUID
    cells: dict[str, Any]
    tags: list[Tag]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class RowListResponse(BaseModel):
    rows: list[RowResponse]
    pagination: Pagination


class HistoryEntryResponse(BaseModel):
    id: UUID
    row_id: UUID
    field: str
    old_value: Any = None
    new_value: Any = None
    changed_by: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class ActivityCreateRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class ActivityEntryResponse(BaseModel):
    id: UUID
    row_id: UUID
    author_role: str
    message: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

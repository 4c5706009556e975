import math
import re
from datetime import date
from typing import Any

from mentorlink.models import BoardColumn
from mentorlink.schemas.board import ColumnType

from .exceptions import BoardValidationError

STATUS_OPTIONS = ["Applied", "Rejected", "Interview", "Offer"]

DEFAULT_COLUMNS = [
    {
        "key": "company",
        "name": "Company",
        "type": ColumnType.TEXT,
        "required": True,
        "options": None,
        "width": 200,
    },
    {
        "key": "dateApplied",
        "name": "Date Applied",
        "type": ColumnType.DATE,
        "required": False,
        "options": None,
        "width": 150,
    },
    {
        "key": "position",
        "name": "Position",
        "type": ColumnType.TEXT,
        "required": True,
        "options": None,
        "width": 200,
    },
    {
        "key": "status",
        "name": "Status",
        "type": ColumnType.SELECT,
        "required": False,
        "options": STATUS_OPTIONS,
        "width": 150,
    },
    {
        "key": "notes",
        "name": "Notes",
        "type": ColumnType.LONGTEXT,
        "required": False,
        "options": None,
        "width": 300,
    },
]

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_CHECKBOX_STRINGS = {"true": True, "false": False}


def coerce_cell_value(column: BoardColumn, value: Any) -> Any:
    """Checks a value against the column type and returns its stored form.

    None always clears the cell. Raises BoardValidationError otherwise.
    """
    if value is None:
        return None

    column_type = ColumnType(column.type)

    if column_type in (ColumnType.TEXT, ColumnType.LONGTEXT):
        return value if isinstance(value, str) else str(value)

    if column_type == ColumnType.NUMBER:
        # bool is an int subclass but never a meaningful number here
        if isinstance(value, bool):
            raise BoardValidationError(f"'{column.key}' must be a number.")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = float(value.strip())
            except ValueError:
                raise BoardValidationError(f"'{column.key}' must be a number.")
        else:
            raise BoardValidationError(f"'{column.key}' must be a number.")
        # NaN and infinities have no JSON form
        if not math.isfinite(parsed):
            raise BoardValidationError(f"'{column.key}' must be a finite number.")
        if isinstance(value, float):
            return value
        return int(parsed) if parsed.is_integer() else parsed

    if column_type == ColumnType.CHECKBOX:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _CHECKBOX_STRINGS:
            return _CHECKBOX_STRINGS[value.strip().lower()]
        raise BoardValidationError(f"'{column.key}' must be true or false.")

    if column_type == ColumnType.DATE:
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str) and _ISO_DATE.match(value):
            return value
        raise BoardValidationError(
            f"'{column.key}' must be a date in YYYY-MM-DD format."
        )

    if column_type == ColumnType.SELECT:
        options = column.options or []
        if value not in options:
            raise BoardValidationError(
                f"'{value}' is not an option for '{column.key}'."
            )
        return value

    raise BoardValidationError(f"Unsupported column type '{column.type}'.")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_column_definitions(columns: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Normalizes a full column list or rejects it as a whole."""
    seen: set[str] = set()
    normalized = []
    for column in columns:
        key = column["key"]
        if key in seen:
            raise BoardValidationError(f"Duplicate column key '{key}'.")
        seen.add(key)

        column_type = ColumnType(column["type"])
        options = None
        if column_type == ColumnType.SELECT:
            options = [
                option.strip()
                for option in (column.get("options") or [])
                if isinstance(option, str) and option.strip()
            ]
            if not options:
                raise BoardValidationError(
                    f"Select column '{key}' needs at least one option."
                )
            # Keep first occurrence order
            options = list(dict.fromkeys(options))

        normalized.append(
            {
                "key": key,
                "name": column["name"],
                "type": column_type,
                "required": bool(column.get("required", False)),
                "options": options,
                "width": column.get("width"),
            }
        )
    return normalized

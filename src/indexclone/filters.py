"""Keyset lower-bound filters and OData literal formatting."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from indexclone.errors import PaginationError

_ISO_DATE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:\d{2})?)?$"
)
_BOOL_LITERALS = {"true": True, "false": False}


def _parse_datetime(value: str) -> datetime | None:
    """Parse an ISO 8601 date or date-time string.

    Returns None if the value is not a valid date. Date-only values and
    values without an offset are treated as UTC.
    """
    if not _ISO_DATE_RE.match(value):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_filter_value(value: Any, field: str | None = None) -> str:
    """Render a value as an OData literal for a ``ge`` comparison.

    Booleans, numbers and dates are emitted bare; any other string is
    single-quoted with embedded quotes doubled.
    """
    if value is None:
        raise PaginationError(
            f"Ordering field '{field}' has no value on the boundary document",
            field=field,
            value=value,
        )
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.isoformat() + "Z"
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value)
    if text.lower() in _BOOL_LITERALS:
        return text.lower()
    if _parse_datetime(text) is not None:
        return text
    return "'" + text.replace("'", "''") + "'"


def compose_filter(field: str, value: Any) -> str:
    """Build the inclusive lower-bound filter ``<field> ge <literal>``."""
    return f"{field} ge {format_filter_value(value, field)}"


def comparable_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        if value.lower() in _BOOL_LITERALS:
            return _BOOL_LITERALS[value.lower()]
        parsed = _parse_datetime(value)
        if parsed is not None:
            return parsed
    return value


@dataclass(frozen=True)
class KeysetFilter:
    """Inclusive lower bound on the ordering field."""

    field: str
    value: Any

    def to_odata(self) -> str:
        return compose_filter(self.field, self.value)

    def matches(self, document: dict) -> bool:
        """Evaluate the bound against a document, as the search service would.

        Documents without the field (or with a null value) never match.
        """
        current = document.get(self.field)
        if current is None:
            return False
        try:
            return comparable_value(current) >= comparable_value(self.value)
        except TypeError:
            return False

    def __str__(self) -> str:
        return self.to_odata()

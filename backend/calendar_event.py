"""Event record and its JSON wire format."""

import secrets
import string
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

import pytz


PRIORITIES = ("high", "medium", "low")
DEFAULT_PRIORITY = "medium"

_ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 7


def format_instant(value: datetime) -> str:
    """Render an instant as an ISO-8601 UTC string with millisecond precision."""
    value = value.astimezone(pytz.UTC)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def parse_instant(value, tz=pytz.UTC) -> datetime:
    """
    Parse an ISO-8601 string (or datetime) into an aware UTC datetime.

    Strings without an offset are wall-clock times in `tz`, which is how a
    datetime-local form field arrives. Raises ValueError on anything else.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value or "").strip()
        if not raw:
            raise ValueError("empty timestamp")
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = tz.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def normalize_priority(raw) -> str:
    value = str(raw or "").strip().lower()
    return value if value in PRIORITIES else DEFAULT_PRIORITY


def new_event_id(taken=()) -> str:
    """Short random base-36 id, unique against `taken`."""
    while True:
        candidate = "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_LENGTH))
        if candidate not in taken:
            return candidate


@dataclass
class Event:
    title: str
    start: datetime
    end: datetime
    priority: str = DEFAULT_PRIORITY
    id: Optional[str] = None

    def with_changes(self, **changes) -> "Event":
        changes.pop("id", None)
        return replace(self, **changes)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "start": format_instant(self.start),
            "end": format_instant(self.end),
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data, tz=pytz.UTC) -> "Event":
        """Build an event from a stored record. Raises KeyError/ValueError/TypeError on bad input."""
        title = data["title"]
        if not isinstance(title, str):
            raise TypeError("title must be a string")
        if not title.strip():
            raise ValueError("title is empty")
        start = parse_instant(data["start"], tz)
        end = parse_instant(data["end"], tz)
        if start >= end:
            raise ValueError("end must be after start")
        raw_id = data.get("id")
        return cls(
            id=str(raw_id) if raw_id is not None else None,
            title=title,
            start=start,
            end=end,
            priority=normalize_priority(data.get("priority")),
        )

"""In-memory event collection backed by a single key-value storage slot."""

import json
import logging
import threading

import pytz

from backend.calendar_event import Event, new_event_id
from backend.errors import StorageParseError

logger = logging.getLogger(__name__)

EVENTS_KEY = "calendar-mock-events-v1"
MUTABLE_FIELDS = ("title", "start", "end", "priority")


class MemoryStorage:
    """Dict-backed key-value storage."""

    def __init__(self, initial=None):
        self.values = dict(initial or {})

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value


def encode_events(events) -> str:
    return json.dumps([event.to_dict() for event in events])


def decode_events(raw, tz=pytz.UTC):
    """Decode a stored payload into events. Raises StorageParseError."""
    try:
        records = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise StorageParseError(f"stored events are not valid JSON: {exc}") from exc
    if not isinstance(records, list):
        raise StorageParseError("stored events must be a JSON array")

    events = []
    seen = set()
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise StorageParseError(f"record {index} is not an object")
        try:
            event = Event.from_dict(record, tz)
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageParseError(f"record {index} is malformed: {exc!r}") from exc
        if not event.id:
            raise StorageParseError(f"record {index} has no id")
        if event.id in seen:
            logger.warning("Dropping duplicate stored event id %s", event.id)
            continue
        seen.add(event.id)
        events.append(event)
    return events


class EventStore:
    """
    Ordered event collection owned by one user.

    Every mutation rewrites the whole slot and then hands the full collection
    to `on_change` (the reminder scheduler's rearm hook).
    """

    def __init__(self, storage, on_change=None, tz=pytz.UTC, key=EVENTS_KEY, lock=None):
        self._storage = storage
        self._on_change = on_change
        self._tz = tz
        self._key = key
        self._lock = lock or threading.RLock()
        self._events = []

    def load(self):
        """Replace the in-memory collection with the stored one. Never raises on bad data."""
        with self._lock:
            raw = self._storage.get(self._key)
            events = []
            if raw:
                try:
                    events = decode_events(raw, self._tz)
                except StorageParseError as exc:
                    logger.error(f"failed parse events under {self._key}: {exc}")
                    events = []
            self._events = events
            self._notify()
            return list(self._events)

    def save(self):
        with self._lock:
            self._storage.set(self._key, encode_events(self._events))

    def all(self):
        return list(self._events)

    def get(self, event_id):
        return next((e for e in self._events if e.id == event_id), None)

    def between(self, start=None, end=None):
        """Events overlapping the half-open window [start, end)."""
        return [
            e for e in self._events
            if (end is None or e.start < end) and (start is None or e.end > start)
        ]

    def create(self, event):
        with self._lock:
            stored = event.with_changes()
            stored.id = new_event_id({e.id for e in self._events})
            self._events.append(stored)
            self._changed()
            return stored

    def update(self, event_id, changes):
        with self._lock:
            for index, current in enumerate(self._events):
                if current.id == event_id:
                    fields = {k: v for k, v in dict(changes).items() if k in MUTABLE_FIELDS}
                    updated = current.with_changes(**fields)
                    self._events[index] = updated
                    self._changed()
                    return updated
            return None

    def delete(self, event_id):
        with self._lock:
            remaining = [e for e in self._events if e.id != event_id]
            if len(remaining) == len(self._events):
                return False
            self._events = remaining
            self._changed()
            return True

    def _changed(self):
        self.save()
        self._notify()

    def _notify(self):
        if self._on_change:
            self._on_change(list(self._events))

from datetime import date, datetime, timedelta

from backend.calendar_event import DEFAULT_PRIORITY, PRIORITIES, Event, parse_instant
from backend.errors import ValidationError


MIN_LEAD_TODAY = timedelta(hours=1)
DEFAULT_DAY_START = (9, 0)
DEFAULT_DURATION = timedelta(hours=1)


def parse_day_value(raw):
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw).strip()[:10], "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def validate_submission(title, start, end, priority, clock, existing=None):
    """
    Check a create/edit submission and return the normalized Event.

    `start`/`end` may be ISO strings (with or without offset) or datetimes.
    The same-day lead time is measured against `clock.now()` at call time.
    Raises ValidationError.
    """
    title = str(title or "").strip()
    if not title:
        raise ValidationError(ValidationError.EMPTY_TITLE)

    if _blank(start) or _blank(end):
        raise ValidationError(ValidationError.MISSING_TIMES)
    try:
        start_at = parse_instant(start, clock.tz)
        end_at = parse_instant(end, clock.tz)
    except (TypeError, ValueError):
        raise ValidationError(ValidationError.MISSING_TIMES, "Start and end must be valid date/times.")

    if start_at >= end_at:
        raise ValidationError(ValidationError.INVALID_RANGE)

    now = clock.now()
    if clock.local(start_at).date() == clock.local(now).date():
        if start_at < now + MIN_LEAD_TODAY:
            raise ValidationError(ValidationError.TOO_SOON)

    if _blank(priority):
        priority = DEFAULT_PRIORITY
    priority = str(priority).strip().lower()
    if priority not in PRIORITIES:
        raise ValidationError(ValidationError.INVALID_PRIORITY)

    return Event(
        id=existing.id if existing is not None else None,
        title=title,
        start=start_at,
        end=end_at,
        priority=priority,
    )


def is_past_day(raw_day, clock):
    """True when the clicked calendar day is before today (local). Unparseable days count as past."""
    day = parse_day_value(raw_day)
    if day is None:
        return True
    return day < clock.today()


def _local_input(value, clock):
    return clock.local(value).strftime("%Y-%m-%dT%H:%M")


def creation_draft(raw_day, clock):
    """
    Prefilled values for the "add event" form opened from a date click.

    Today: start at now + 1h (to the minute), end an hour later.
    Future days: 09:00-10:00 local. Past days: None, no form opens.
    """
    if is_past_day(raw_day, clock):
        return None
    day = parse_day_value(raw_day)
    if day == clock.today():
        start_at = (clock.now() + MIN_LEAD_TODAY).replace(second=0, microsecond=0)
        # Minute truncation may land just under the lead time; round up.
        if start_at < clock.now() + MIN_LEAD_TODAY:
            start_at += timedelta(minutes=1)
    else:
        hour, minute = DEFAULT_DAY_START
        start_at = clock.tz.localize(datetime(day.year, day.month, day.day, hour, minute))
    end_at = start_at + DEFAULT_DURATION
    return {
        "date": day.isoformat(),
        "title": "",
        "start": _local_input(start_at, clock),
        "end": _local_input(end_at, clock),
        "priority": DEFAULT_PRIORITY,
    }

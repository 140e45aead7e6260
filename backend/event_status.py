"""Display status and priority styling for calendar events.

Everything here is a pure function of the event and the instant passed in;
callers recompute on every render because the status moves with the clock.
"""

from datetime import timedelta

from backend.calendar_event import format_instant


STATUS_UPCOMING = "upcoming"
STATUS_LIVE = "live"
STATUS_COMPLETED = "completed"

LIVE_LEAD_TIME = timedelta(minutes=5)

STATUS_COLORS = {
    STATUS_UPCOMING: "#06b6d4",
    STATUS_LIVE: "#ef4444",
    STATUS_COMPLETED: "#94a3b8",
}

STATUS_LABELS = {
    STATUS_UPCOMING: "Upcoming",
    STATUS_LIVE: "Live (5 min before → end)",
    STATUS_COMPLETED: "Completed",
}

PRIORITY_BORDERS = {
    "high": ("2px", "solid", "#b91c1c"),
    "medium": ("2px", "solid", "#f59e0b"),
    "low": ("2px", "solid", "#10b981"),
}


def classify(event, now) -> str:
    # Order matters: completed wins over live, live over upcoming.
    if now >= event.end:
        return STATUS_COMPLETED
    if now >= event.start - LIVE_LEAD_TIME:
        return STATUS_LIVE
    return STATUS_UPCOMING


def is_completed(event, now) -> bool:
    return classify(event, now) == STATUS_COMPLETED


def priority_border(priority):
    """(width, style, color) for a priority; anything unknown is styled as low."""
    return PRIORITY_BORDERS.get(priority, PRIORITY_BORDERS["low"])


def border_css(priority) -> str:
    return " ".join(priority_border(priority))


def render_descriptor(event, now):
    """Event as the calendar widget consumes it."""
    status = classify(event, now)
    return {
        "id": event.id,
        "title": event.title,
        "start": format_instant(event.start),
        "end": format_instant(event.end),
        "backgroundColor": STATUS_COLORS[status],
        "borderColor": priority_border(event.priority)[2],
        "priority": event.priority,
        "status": status,
        "extendedProps": {"priority": event.priority, "status": status},
    }


def legend():
    return {
        "statuses": [
            {"status": status, "label": STATUS_LABELS[status], "color": STATUS_COLORS[status]}
            for status in (STATUS_UPCOMING, STATUS_LIVE, STATUS_COMPLETED)
        ],
        "priorities": [
            {"priority": priority, "border": border_css(priority)}
            for priority in ("high", "medium", "low")
        ],
    }

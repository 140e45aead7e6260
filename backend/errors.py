"""Error types raised by the calendar core."""


class CalendarError(Exception):
    """Base class for recoverable calendar errors."""


class ValidationError(CalendarError):
    """A create/edit submission broke an event invariant. Blocks the save."""

    EMPTY_TITLE = "EmptyTitle"
    MISSING_TIMES = "MissingTimes"
    INVALID_RANGE = "InvalidRange"
    TOO_SOON = "TooSoon"
    INVALID_PRIORITY = "InvalidPriority"

    MESSAGES = {
        EMPTY_TITLE: "Title is required.",
        MISSING_TIMES: "Start and end are required.",
        INVALID_RANGE: "End time must be greater than start time.",
        TOO_SOON: "Start time for today must be at least current time + 1 hour.",
        INVALID_PRIORITY: "Priority must be one of high, medium, low.",
    }

    def __init__(self, code, message=None):
        self.code = code
        self.message = message or self.MESSAGES.get(code, "Invalid event.")
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class StorageParseError(CalendarError):
    """The stored event payload could not be decoded."""


class IdentityProviderError(CalendarError):
    """Sign-in/sign-up failed. `message` is safe to show to the user."""

    def __init__(self, code, message="Authentication failed"):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

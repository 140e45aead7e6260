"""Single source of "now" for classification, validation and reminders."""

from datetime import datetime, timedelta

import pytz


class SystemClock:
    """Wall clock. Instants are timezone-aware UTC; `tz` is the local calendar zone."""

    def __init__(self, timezone="UTC"):
        self.tz = pytz.timezone(timezone) if isinstance(timezone, str) else timezone

    def now(self) -> datetime:
        return datetime.now(pytz.UTC)

    def local(self, instant=None) -> datetime:
        return (instant or self.now()).astimezone(self.tz)

    def today(self):
        return self.local().date()


class FixedClock(SystemClock):
    """Clock frozen at a given instant; move it with `advance`."""

    def __init__(self, instant, timezone="UTC"):
        super().__init__(timezone)
        if instant.tzinfo is None:
            instant = self.tz.localize(instant)
        self.instant = instant.astimezone(pytz.UTC)

    def now(self) -> datetime:
        return self.instant

    def advance(self, **delta):
        self.instant = self.instant + timedelta(**delta)
        return self.instant

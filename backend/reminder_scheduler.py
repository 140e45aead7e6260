"""
One-shot reminder jobs before each event's start.

Every rearm cancels all of an owner's jobs and derives a fresh set from the
owner's full event collection. Jobs carry the generation they were armed
under; a job from an older generation never reaches the notifier.
"""

import logging
import threading
from datetime import datetime, timedelta

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from backend.calendar_event import format_instant

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = (15, 10, 5)  # minutes before start


def create_job_scheduler(timezone="UTC"):
    """APScheduler instance with a single worker so job bodies never overlap."""
    return BackgroundScheduler(
        timezone=timezone,
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        job_defaults={"coalesce": False, "misfire_grace_time": 60},
    )


class ReminderInbox:
    """The single "currently displayed reminder" slot per owner. Last write wins."""

    def __init__(self):
        self._slots = {}
        self._lock = threading.Lock()

    def deliver(self, owner, event, offset_minutes, fired_at: datetime):
        reminder = {
            "event": event.to_dict(),
            "offset_minutes": offset_minutes,
            "message": f"{offset_minutes} minutes before",
            "fired_at": format_instant(fired_at),
        }
        with self._lock:
            self._slots[owner] = reminder
        return reminder

    def peek(self, owner):
        with self._lock:
            return self._slots.get(owner)

    def dismiss(self, owner):
        with self._lock:
            return self._slots.pop(owner, None)

    def clear(self):
        with self._lock:
            self._slots.clear()


class ReminderScheduler:
    def __init__(self, scheduler, notify, now, offsets=REMINDER_OFFSETS, lock=None):
        self._scheduler = scheduler
        self._notify = notify
        self._now = now
        self._offsets = tuple(offsets)
        self._lock = lock or threading.RLock()
        self._timers = {}       # owner -> {event_id: [job_id, ...]}
        self._generations = {}  # owner -> int

    def rearm(self, owner, events):
        """Cancel everything armed for `owner`, then arm every future offset of `events`."""
        with self._lock:
            self._cancel(owner)
            generation = self._generations.get(owner, 0) + 1
            self._generations[owner] = generation
            now = self._now()
            timers = {}
            for event in events:
                handles = []
                for minutes in self._offsets:
                    remind_at = event.start - timedelta(minutes=minutes)
                    if remind_at <= now:
                        continue
                    job_id = f"reminder_{owner}_{event.id}_{minutes}_{generation}"
                    self._scheduler.add_job(
                        self._fire,
                        'date',
                        run_date=remind_at,
                        args=[owner, generation, job_id, event, minutes],
                        id=job_id,
                        replace_existing=True,
                    )
                    handles.append(job_id)
                if handles:
                    timers[event.id] = handles
            self._timers[owner] = timers
            logger.info(
                "Armed %s reminder(s) for %s event(s) of owner %s (generation %s)",
                sum(len(h) for h in timers.values()), len(timers), owner, generation,
            )
            return {event_id: list(handles) for event_id, handles in timers.items()}

    def disarm(self, owner):
        """Cancel every job of `owner` and invalidate anything already dequeued."""
        with self._lock:
            self._cancel(owner)
            self._generations[owner] = self._generations.get(owner, 0) + 1

    def armed(self, owner):
        """Pending run instants per event id."""
        with self._lock:
            result = {}
            for event_id, handles in self._timers.get(owner, {}).items():
                times = []
                for job_id in handles:
                    job = self._scheduler.get_job(job_id)
                    if job is not None:
                        times.append(job.trigger.run_date)
                result[event_id] = times
            return result

    def armed_count(self, owner) -> int:
        with self._lock:
            return sum(len(handles) for handles in self._timers.get(owner, {}).values())

    def shutdown(self):
        with self._lock:
            for owner in list(self._timers):
                self.disarm(owner)
        if getattr(self._scheduler, "running", False):
            self._scheduler.shutdown(wait=False)

    def _cancel(self, owner):
        timers = self._timers.pop(owner, {})
        cancelled = 0
        for handles in timers.values():
            for job_id in handles:
                try:
                    self._scheduler.remove_job(job_id)
                    cancelled += 1
                except JobLookupError:
                    logger.debug(f"Reminder job {job_id} already gone")
        if cancelled:
            logger.debug(f"Cancelled {cancelled} reminder job(s) for owner {owner}")

    def _fire(self, owner, generation, job_id, event, minutes):
        with self._lock:
            if self._generations.get(owner) != generation:
                logger.debug(f"Skipping stale reminder {job_id}")
                return
            handles = self._timers.get(owner, {}).get(event.id)
            if handles and job_id in handles:
                handles.remove(job_id)
                if not handles:
                    self._timers[owner].pop(event.id, None)
            try:
                self._notify(owner, event, minutes)
            except Exception as e:
                logger.error(f"Error sending reminder for event {event.id}: {e}")

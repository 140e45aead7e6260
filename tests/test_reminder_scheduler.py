from datetime import datetime, timedelta

import pytest
import pytz

from backend.calendar_event import Event
from backend.clock import FixedClock
from backend.event_store import EventStore, MemoryStorage
from backend.reminder_scheduler import ReminderInbox, ReminderScheduler, create_job_scheduler


NOW = datetime(2025, 10, 17, 8, 0, tzinfo=pytz.UTC)


class Notifications:
    def __init__(self):
        self.sent = []

    def __call__(self, owner, event, minutes):
        self.sent.append((owner, event.id, minutes))


@pytest.fixture
def setup():
    clock = FixedClock(NOW)
    jobs = create_job_scheduler("UTC")  # never started; jobs stay pending
    notifications = Notifications()
    reminders = ReminderScheduler(jobs, notify=notifications, now=clock.now)
    yield clock, jobs, reminders, notifications
    reminders.shutdown()


def event_at(event_id, minutes_from_now, title="Standup"):
    start = NOW + timedelta(minutes=minutes_from_now)
    return Event(id=event_id, title=title, start=start, end=start + timedelta(minutes=30))


def fire(job):
    job.func(*job.args)


def test_arms_all_three_offsets_in_the_future(setup):
    clock, jobs, reminders, _ = setup
    event = event_at("a", 60)
    armed = reminders.rearm(1, [event])
    assert len(armed["a"]) == 3
    run_dates = sorted(job.trigger.run_date for job in jobs.get_jobs())
    assert run_dates == [event.start - timedelta(minutes=m) for m in (15, 10, 5)]


def test_past_due_offsets_are_dropped(setup):
    _, jobs, reminders, _ = setup
    armed = reminders.rearm(1, [event_at("a", 12)])
    assert len(armed["a"]) == 2
    assert sorted(reminders.armed(1)["a"]) == [NOW + timedelta(minutes=2), NOW + timedelta(minutes=7)]


def test_offset_exactly_now_is_not_armed(setup):
    _, _, reminders, _ = setup
    armed = reminders.rearm(1, [event_at("a", 5)])
    assert "a" not in armed
    assert reminders.armed_count(1) == 0


def test_rearm_cancels_previous_generation(setup):
    _, jobs, reminders, notifications = setup
    reminders.rearm(1, [event_at("a", 60)])
    old_jobs = jobs.get_jobs()
    reminders.rearm(1, [event_at("a", 90), event_at("b", 120)])

    old_ids = {job.id for job in old_jobs}
    assert not old_ids & {job.id for job in jobs.get_jobs()}
    assert reminders.armed_count(1) == 6
    # A job that escaped cancellation still must not notify.
    for job in old_jobs:
        fire(job)
    assert notifications.sent == []


def test_fire_notifies_once_and_leaves_others_armed(setup):
    _, jobs, reminders, notifications = setup
    reminders.rearm(1, [event_at("a", 60), event_at("b", 60)])
    job = next(j for j in jobs.get_jobs() if j.args[3].id == "a" and j.args[4] == 10)
    fire(job)
    assert notifications.sent == [(1, "a", 10)]
    assert reminders.armed_count(1) == 5


def test_deleting_event_through_store_removes_its_timers(setup):
    _, jobs, reminders, notifications = setup
    store = EventStore(MemoryStorage(), on_change=lambda events: reminders.rearm(1, events))
    start = NOW + timedelta(hours=2)
    keep = store.create(Event(title="Keep", start=start, end=start + timedelta(minutes=30)))
    drop = store.create(Event(title="Drop", start=start, end=start + timedelta(minutes=30)))
    drop_jobs = [j for j in jobs.get_jobs() if j.args[3].id == drop.id]
    assert len(drop_jobs) == 3

    store.delete(drop.id)
    assert set(reminders.armed(1)) == {keep.id}
    for job in drop_jobs:
        fire(job)
    assert notifications.sent == []


def test_owners_are_isolated(setup):
    _, _, reminders, _ = setup
    reminders.rearm(1, [event_at("a", 60)])
    reminders.rearm(2, [event_at("b", 60)])
    reminders.rearm(1, [])
    assert reminders.armed_count(1) == 0
    assert reminders.armed_count(2) == 3


def test_disarm_invalidates_pending_callbacks(setup):
    _, jobs, reminders, notifications = setup
    reminders.rearm(1, [event_at("a", 60)])
    pending = jobs.get_jobs()
    reminders.disarm(1)
    assert jobs.get_jobs() == []
    for job in pending:
        fire(job)
    assert notifications.sent == []


def test_notifier_failure_is_logged_not_raised(caplog):
    clock = FixedClock(NOW)
    jobs = create_job_scheduler("UTC")

    def broken(owner, event, minutes):
        raise RuntimeError("popup unavailable")

    reminders = ReminderScheduler(jobs, notify=broken, now=clock.now)
    reminders.rearm(1, [event_at("a", 60)])
    fire(jobs.get_jobs()[0])
    assert "Error sending reminder for event a" in caplog.text


def test_inbox_keeps_only_latest_reminder():
    inbox = ReminderInbox()
    first = event_at("a", 30, title="First")
    second = event_at("b", 30, title="Second")
    inbox.deliver(1, first, 15, NOW)
    inbox.deliver(1, second, 10, NOW)
    current = inbox.peek(1)
    assert current["event"]["title"] == "Second"
    assert current["message"] == "10 minutes before"
    assert current["fired_at"] == "2025-10-17T08:00:00.000Z"
    assert inbox.dismiss(1) is not None
    assert inbox.peek(1) is None

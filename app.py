import atexit
import os
import threading

from dotenv import load_dotenv
from flask import Flask, request, session

load_dotenv()

from models import db, User, StorageSlot
from backend.clock import SystemClock
from backend.event_store import EventStore, EVENTS_KEY
from backend.identity import current_user
from backend.reminder_scheduler import ReminderInbox, ReminderScheduler, create_job_scheduler
from backend.slot_storage import SlotStorage
from services import auth_routes, event_routes, reminder_routes

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///calendar.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['PERMANENT_SESSION_LIFETIME'] = 365 * 24 * 60 * 60  # 1 year in seconds
app.config['API_SHARED_KEY'] = os.environ.get('API_SHARED_KEY')  # Optional shared key for API callers
app.config['DEFAULT_TIMEZONE'] = os.environ.get('DEFAULT_TIMEZONE', 'UTC')

db.init_app(app)

clock = SystemClock(app.config['DEFAULT_TIMEZONE'])
core_lock = threading.RLock()
reminder_inbox = ReminderInbox()
scheduler = create_job_scheduler(app.config['DEFAULT_TIMEZONE'])
_stores = {}


def _deliver_reminder(owner, event, minutes):
    reminder_inbox.deliver(owner, event, minutes, clock.now())
    app.logger.info(f"Reminder for event {event.id} ({minutes} minutes before) delivered to user {owner}")


reminders = ReminderScheduler(
    scheduler,
    notify=_deliver_reminder,
    now=lambda: clock.now(),
    lock=core_lock,
)


def get_current_user():
    """Resolve the current user from a shared API key + user id header, else fall back to session."""
    # Header-based auth for service callers
    api_key = request.headers.get('X-API-Key')
    api_user_id = request.headers.get('X-User-Id')
    shared_key = app.config.get('API_SHARED_KEY')
    if shared_key and api_key and api_user_id:
        try:
            api_uid_int = int(api_user_id)
        except (TypeError, ValueError):
            api_uid_int = None
        if api_uid_int and api_key == shared_key:
            user = db.session.get(User, api_uid_int)
            if user:
                return user

    # Session-based auth for browser users
    return current_user(session)


def get_event_store(user_id):
    """The user's event store, loaded (and its reminders armed) on first use."""
    with core_lock:
        store = _stores.get(user_id)
        if store is None:
            store = EventStore(
                SlotStorage(user_id),
                on_change=lambda events: reminders.rearm(user_id, events),
                tz=clock.tz,
                lock=core_lock,
            )
            _stores[user_id] = store
            store.load()
        return store


def begin_user_session(user_id):
    """Load the user's events on sign-in. Reminders fired while signed out are stale and dropped."""
    reminder_inbox.dismiss(user_id)
    return get_event_store(user_id)


def end_user_session(user_id):
    """Tear down everything armed on behalf of a signed-out user."""
    with core_lock:
        reminders.disarm(user_id)
        _stores.pop(user_id, None)
    reminder_inbox.dismiss(user_id)


with app.app_context():
    db.create_all()


def _schedule_existing_reminders():
    """Load every stored event collection so its reminders are armed on startup."""
    with app.app_context():
        try:
            owner_ids = [row.user_id for row in StorageSlot.query.filter_by(key=EVENTS_KEY).all()]
            for user_id in owner_ids:
                try:
                    get_event_store(user_id)
                except Exception as e:
                    app.logger.error(f"Error scheduling reminders for user {user_id}: {e}")
            app.logger.info(f"Reminders armed for {len(owner_ids)} user(s)")
        except Exception as e:
            app.logger.error(f"Error in _schedule_existing_reminders: {e}")


def _shutdown_scheduler():
    reminders.shutdown()


def _start_scheduler():
    """Start the background reminder scheduler."""
    if os.environ.get('ENABLE_REMINDER_JOBS', '1') != '1':
        return
    if scheduler.running:
        return
    # Avoid double-start in Flask debug reloader
    if app.debug and os.environ.get('WERKZEUG_RUN_MAIN') != 'true':
        return
    scheduler.start()
    atexit.register(_shutdown_scheduler)
    _schedule_existing_reminders()


# Start scheduler on process startup (not request-dependent).
# Can be disabled for tooling/scripts that only need app context.
if os.environ.get('BOOTSTRAP_JOBS_ON_IMPORT', '1') == '1':
    try:
        _start_scheduler()
    except Exception as e:
        app.logger.error(f"Error starting scheduler on startup: {e}")


# Auth
app.add_url_rule('/api/auth/signup', view_func=auth_routes.signup, methods=['POST'])
app.add_url_rule('/api/auth/signin', view_func=auth_routes.signin, methods=['POST'])
app.add_url_rule('/api/auth/popup', view_func=auth_routes.signin_with_popup, methods=['POST'])
app.add_url_rule('/api/auth/signout', view_func=auth_routes.signout, methods=['POST'])
app.add_url_rule('/api/auth/current-user', view_func=auth_routes.current_user_info)

# Calendar
app.add_url_rule('/api/calendar/events', view_func=event_routes.calendar_events, methods=['GET', 'POST'])
app.add_url_rule(
    '/api/calendar/events/<event_id>',
    view_func=event_routes.calendar_event_detail,
    methods=['GET', 'PUT', 'DELETE'],
)
app.add_url_rule('/api/calendar/date-click', view_func=event_routes.date_click, methods=['POST'])
app.add_url_rule('/api/calendar/view', view_func=event_routes.calendar_view, methods=['GET', 'POST'])
app.add_url_rule('/api/calendar/legend', view_func=event_routes.calendar_legend)

# Reminders
app.add_url_rule('/api/reminders/current', view_func=reminder_routes.current_reminder)
app.add_url_rule('/api/reminders/dismiss', view_func=reminder_routes.dismiss_reminder, methods=['POST'])
app.add_url_rule('/api/reminders/armed', view_func=reminder_routes.armed_reminders)

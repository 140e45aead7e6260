import os
from datetime import datetime

os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['ENABLE_REMINDER_JOBS'] = '0'
os.environ['DEFAULT_TIMEZONE'] = 'UTC'
os.environ.setdefault('SECRET_KEY', 'test-secret')

import pytest
import pytz

from backend.clock import FixedClock


NOW = datetime(2025, 10, 17, 8, 0, tzinfo=pytz.UTC)


@pytest.fixture
def clock():
    return FixedClock(NOW)


def _reset(app_module):
    for user_id in list(app_module._stores):
        app_module.end_user_session(user_id)
    app_module.reminders.shutdown()
    app_module.scheduler.remove_all_jobs()
    app_module.reminder_inbox.clear()
    with app_module.app.app_context():
        app_module.db.drop_all()
        app_module.db.create_all()


@pytest.fixture
def app_module(monkeypatch, clock):
    import app as app_module

    app_module.app.config.update(TESTING=True, API_SHARED_KEY='test-shared-key')
    monkeypatch.setattr(app_module, 'clock', clock)
    _reset(app_module)
    yield app_module
    _reset(app_module)


@pytest.fixture
def client(app_module):
    return app_module.app.test_client()


@pytest.fixture
def signed_in(client):
    resp = client.post('/api/auth/signup', json={'email': 'ada@example.com', 'password': 'hunter22'})
    assert resp.status_code == 201
    return resp.get_json()['user_id']

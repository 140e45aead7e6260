from models import User


def test_signup_signs_in(client):
    resp = client.post('/api/auth/signup', json={'email': 'Grace@Example.com', 'password': 'cobol-1959'})
    assert resp.status_code == 201
    assert resp.get_json()['email'] == 'grace@example.com'
    me = client.get('/api/auth/current-user').get_json()
    assert me['email'] == 'grace@example.com'
    assert me['loading'] is False


def test_signup_rejects_weak_password_and_duplicates(client):
    weak = client.post('/api/auth/signup', json={'email': 'a@example.com', 'password': '123'})
    assert weak.status_code == 400
    assert weak.get_json()['code'] == 'weak-password'

    client.post('/api/auth/signup', json={'email': 'a@example.com', 'password': 'long-enough'})
    dup = client.post('/api/auth/signup', json={'email': 'a@example.com', 'password': 'long-enough'})
    assert dup.status_code == 400
    assert dup.get_json()['code'] == 'email-already-in-use'


def test_signup_rejects_bad_email(client):
    resp = client.post('/api/auth/signup', json={'email': 'not-an-email', 'password': 'long-enough'})
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'invalid-email'


def test_signin_with_wrong_password_is_generic(client):
    client.post('/api/auth/signup', json={'email': 'a@example.com', 'password': 'long-enough'})
    client.post('/api/auth/signout')
    resp = client.post('/api/auth/signin', json={'email': 'a@example.com', 'password': 'wrong-one'})
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Authentication failed'
    assert client.get('/api/auth/current-user').get_json()['user_id'] is None


def test_signin_and_signout(client):
    client.post('/api/auth/signup', json={'email': 'a@example.com', 'password': 'long-enough'})
    client.post('/api/auth/signout')
    assert client.get('/api/calendar/events').status_code == 401

    resp = client.post('/api/auth/signin', json={'email': 'a@example.com', 'password': 'long-enough'})
    assert resp.status_code == 200
    assert client.get('/api/calendar/events').status_code == 200


def test_signout_disarms_reminders(client, signed_in, app_module):
    client.post('/api/calendar/events', json={
        'title': 'Standup', 'start': '2025-10-18T10:00:00Z', 'end': '2025-10-18T10:30:00Z',
    })
    assert app_module.reminders.armed_count(signed_in) == 3
    client.post('/api/auth/signout')
    assert app_module.reminders.armed_count(signed_in) == 0
    assert signed_in not in app_module._stores


def test_failed_signin_keeps_events(client, signed_in, app_module):
    client.post('/api/calendar/events', json={
        'title': 'Standup', 'start': '2025-10-18T10:00:00Z', 'end': '2025-10-18T10:30:00Z',
    })
    client.post('/api/auth/signin', json={'email': 'ada@example.com', 'password': 'nope-nope'})
    assert len(app_module.get_event_store(signed_in).all()) == 1


def test_popup_requires_shared_key(client):
    resp = client.post('/api/auth/popup', json={'provider': 'google', 'email': 'g@example.com'})
    assert resp.status_code == 401


def test_popup_creates_federated_account(client, app_module):
    headers = {'X-API-Key': 'test-shared-key'}
    resp = client.post(
        '/api/auth/popup',
        json={'provider': 'google', 'email': 'g@example.com', 'display_name': 'Gee'},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()['display_name'] == 'Gee'
    with app_module.app.app_context():
        user = User.query.filter_by(email='g@example.com').one()
        assert user.provider == 'google'
        assert user.check_password('anything') is False

    unsupported = client.post('/api/auth/popup', json={'provider': 'myspace', 'email': 'g@example.com'}, headers=headers)
    assert unsupported.status_code == 400
    assert unsupported.get_json()['code'] == 'unsupported-provider'


def test_api_key_header_resolves_user(client, signed_in, app_module):
    client.post('/api/auth/signout')
    other = app_module.app.test_client()
    resp = other.get('/api/calendar/events', headers={'X-API-Key': 'test-shared-key', 'X-User-Id': str(signed_in)})
    assert resp.status_code == 200


def test_signin_drops_reminder_fired_while_signed_out(client, signed_in, app_module):
    client.post('/api/calendar/events', json={
        'title': 'Standup', 'start': '2025-10-18T10:00:00Z', 'end': '2025-10-18T10:30:00Z',
    })
    client.post('/api/auth/signout')

    # A restart arms every stored collection, signed in or not.
    app_module._schedule_existing_reminders()
    job = app_module.scheduler.get_jobs()[0]
    job.func(*job.args)
    assert app_module.reminder_inbox.peek(signed_in) is not None

    client.post('/api/auth/signin', json={'email': 'ada@example.com', 'password': 'hunter22'})
    assert client.get('/api/reminders/current').get_json() == {'reminder': None}
    assert app_module.reminders.armed_count(signed_in) == 2

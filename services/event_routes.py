"""Calendar routes: render feed, widget gestures, and event CRUD."""

from flask import jsonify, request, session

from backend.calendar_event import parse_instant
from backend.errors import ValidationError
from backend.event_status import classify, is_completed, legend, render_descriptor
from services.validation_service import creation_draft, validate_submission

VIEW_TYPES = ('dayGridMonth', 'timeGridWeek', 'timeGridDay')
DEFAULT_VIEW = 'dayGridMonth'


def _event_payload(event, now):
    data = event.to_dict()
    data['status'] = classify(event, now)
    return data


def calendar_events():
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401
    store = a.get_event_store(user.id)

    if request.method == 'GET':
        try:
            window_start = parse_instant(request.args['start'], a.clock.tz) if request.args.get('start') else None
            window_end = parse_instant(request.args['end'], a.clock.tz) if request.args.get('end') else None
        except ValueError:
            return jsonify({'error': 'Invalid date range'}), 400
        now = a.clock.now()
        return jsonify([render_descriptor(e, now) for e in store.between(window_start, window_end)])

    data = request.get_json(silent=True) or {}
    try:
        event = validate_submission(
            data.get('title'), data.get('start'), data.get('end'), data.get('priority'), a.clock
        )
    except ValidationError as exc:
        return jsonify(exc.to_dict()), 400
    created = store.create(event)
    a.app.logger.info(f"Created event {created.id} for user {user.id}")
    return jsonify(_event_payload(created, a.clock.now())), 201


def calendar_event_detail(event_id):
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401
    store = a.get_event_store(user.id)
    event = store.get(event_id)
    if event is None:
        return jsonify({'error': 'Event not found'}), 404
    now = a.clock.now()

    if request.method == 'GET':
        return jsonify({'event': _event_payload(event, now), 'read_only': is_completed(event, now)})

    # Completed events open read-only: no edit, no delete.
    if is_completed(event, now):
        return jsonify({'error': 'Completed events cannot be changed'}), 409

    if request.method == 'DELETE':
        store.delete(event_id)
        a.app.logger.info(f"Deleted event {event_id} for user {user.id}")
        return jsonify({'deleted': True, 'id': event_id})

    data = request.get_json(silent=True) or {}
    try:
        candidate = validate_submission(
            data.get('title', event.title),
            data.get('start', event.start),
            data.get('end', event.end),
            data.get('priority', event.priority),
            a.clock,
            existing=event,
        )
    except ValidationError as exc:
        return jsonify(exc.to_dict()), 400
    updated = store.update(event_id, {
        'title': candidate.title,
        'start': candidate.start,
        'end': candidate.end,
        'priority': candidate.priority,
    })
    if updated is None:
        return jsonify({'error': 'Event not found'}), 404
    return jsonify(_event_payload(updated, a.clock.now()))


def date_click():
    """A date cell was clicked: open a prefilled creation form unless the day is past."""
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401
    data = request.get_json(silent=True) or {}
    draft = creation_draft(data.get('date') or data.get('dateStr'), a.clock)
    if draft is None:
        return jsonify({'open': False, 'error': 'Events cannot be created on past dates'}), 409
    return jsonify({'open': True, 'draft': draft})


def calendar_view():
    """Remember the widget's current view type and title across reloads."""
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401

    if request.method == 'GET':
        return jsonify(session.get('calendar_view') or {'title': '', 'view_type': DEFAULT_VIEW})

    data = request.get_json(silent=True) or {}
    view_type = data.get('view_type') or data.get('viewType')
    if view_type not in VIEW_TYPES:
        return jsonify({'error': f"view_type must be one of {', '.join(VIEW_TYPES)}"}), 400
    session['calendar_view'] = {'title': str(data.get('title') or ''), 'view_type': view_type}
    return jsonify(session['calendar_view'])


def calendar_legend():
    return jsonify(legend())

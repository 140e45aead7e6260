"""Reminder popup routes."""

from flask import jsonify


def current_reminder():
    """The reminder currently on screen for this user, if any."""
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401
    a.get_event_store(user.id)
    return jsonify({'reminder': a.reminder_inbox.peek(user.id)})


def dismiss_reminder():
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401
    dismissed = a.reminder_inbox.dismiss(user.id)
    return jsonify({'dismissed': dismissed is not None})


def armed_reminders():
    """Pending reminder instants per event id."""
    import app as a

    user = a.get_current_user()
    if not user:
        return jsonify({'error': 'Sign in required'}), 401
    a.get_event_store(user.id)
    armed = a.reminders.armed(user.id)
    return jsonify({
        'reminders': {
            event_id: [run_at.isoformat() for run_at in run_times]
            for event_id, run_times in armed.items()
        }
    })

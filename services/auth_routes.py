"""Sign-in/sign-up/sign-out routes backed by the local identity provider."""

from flask import jsonify, request, session

from backend import identity
from backend.errors import IdentityProviderError


def _user_payload(user):
    return {'success': True, 'user_id': user.id, 'email': user.email, 'display_name': user.display_name}


def signup():
    import app as a

    data = request.get_json(silent=True) or {}
    try:
        user = identity.sign_up(session, data.get('email'), data.get('password'))
    except IdentityProviderError as exc:
        a.app.logger.info(f"Sign-up rejected: {exc.code}")
        return jsonify({'error': exc.message, 'code': exc.code}), 400
    a.begin_user_session(user.id)
    return jsonify(_user_payload(user)), 201


def signin():
    import app as a

    data = request.get_json(silent=True) or {}
    try:
        user = identity.sign_in(session, data.get('email'), data.get('password'))
    except IdentityProviderError as exc:
        a.app.logger.info(f"Sign-in rejected: {exc.code}")
        return jsonify({'error': exc.message, 'code': exc.code}), 401
    a.begin_user_session(user.id)
    return jsonify(_user_payload(user))


def signin_with_popup():
    """Federated sign-in. The caller vouches for the identity with the shared API key."""
    import app as a

    shared_key = a.app.config.get('API_SHARED_KEY')
    if not shared_key or request.headers.get('X-API-Key') != shared_key:
        a.app.logger.warning("Popup sign-in attempted without a valid shared key")
        return jsonify({'error': 'Authentication failed', 'code': 'untrusted-assertion'}), 401

    data = request.get_json(silent=True) or {}
    try:
        user = identity.sign_in_with_popup(
            session,
            data.get('provider', 'google'),
            data.get('email'),
            display_name=(data.get('display_name') or '').strip() or None,
        )
    except IdentityProviderError as exc:
        a.app.logger.info(f"Popup sign-in rejected: {exc.code}")
        return jsonify({'error': exc.message, 'code': exc.code}), 400
    a.begin_user_session(user.id)
    return jsonify(_user_payload(user))


def signout():
    import app as a

    user_id = identity.sign_out(session)
    if user_id:
        a.end_user_session(user_id)
    return jsonify({'success': True})


def current_user_info():
    import app as a

    user = a.get_current_user()
    if user:
        return jsonify({'user_id': user.id, 'email': user.email, 'display_name': user.display_name, 'loading': False})
    return jsonify({'user_id': None, 'email': None, 'display_name': None, 'loading': False})

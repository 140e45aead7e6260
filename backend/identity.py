"""Local identity provider: email/password accounts plus trusted federated sign-in."""

import logging
import re

from backend.errors import IdentityProviderError
from models import db, User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = 'user_id'
MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
POPUP_PROVIDERS = ('google',)


def _normalize_email(raw):
    email = str(raw or '').strip().lower()
    if not EMAIL_PATTERN.fullmatch(email):
        raise IdentityProviderError('invalid-email', 'A valid email address is required')
    return email


def start_session(session, user):
    session[SESSION_USER_KEY] = user.id
    session.permanent = True


def sign_up(session, email, password):
    email = _normalize_email(email)
    password = str(password or '')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise IdentityProviderError(
            'weak-password', f'Password should be at least {MIN_PASSWORD_LENGTH} characters'
        )
    if User.query.filter_by(email=email).first():
        raise IdentityProviderError('email-already-in-use', 'Email is already registered')

    user = User(email=email, provider='password')
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    start_session(session, user)
    logger.info("Signed up user %s", user.id)
    return user


def sign_in(session, email, password):
    email = _normalize_email(email)
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(str(password or '')):
        raise IdentityProviderError('invalid-credential', 'Authentication failed')
    start_session(session, user)
    logger.info("Signed in user %s", user.id)
    return user


def sign_in_with_popup(session, provider, email, display_name=None):
    """Accept an identity already verified by `provider`; the account is created on first use."""
    provider = str(provider or '').strip().lower()
    if provider not in POPUP_PROVIDERS:
        raise IdentityProviderError('unsupported-provider', f'Sign-in with {provider or "this provider"} is not available')
    email = _normalize_email(email)
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, provider=provider, display_name=display_name or None)
        db.session.add(user)
        db.session.commit()
        logger.info("Created %s account for user %s", provider, user.id)
    elif display_name and not user.display_name:
        user.display_name = display_name
        db.session.commit()
    start_session(session, user)
    return user


def sign_out(session):
    return session.pop(SESSION_USER_KEY, None)


def current_user(session):
    user_id = session.get(SESSION_USER_KEY)
    if user_id:
        return db.session.get(User, user_id)
    return None

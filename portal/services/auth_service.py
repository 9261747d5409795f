from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError

from portal.domain.enums import PackageTier, Role
from portal.errors import Conflict, PortalError, ValidationFailed
from portal.extensions import db
from portal.models import User
from portal.utils.db_resilience import with_db_resilience


logger = logging.getLogger(__name__)

TOKEN_SALT = 'portal-auth-v1'
PHONE_RE = re.compile(r'^[6-9]\d{9}$')


class InvalidCredentials(PortalError):
    status_code = 401


def build_serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=secret_key, salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    s = build_serializer(current_app.config['SECRET_KEY'])
    return s.dumps({'id': user.id, 'role': user.role})


def verify_token(token: str, max_age: Optional[int] = None) -> dict | None:
    """Return the token payload, or None when it is forged, stale or malformed."""

    if not token:
        return None
    if max_age is None:
        max_age = int(current_app.config['AUTH_TOKEN_MAX_AGE'].total_seconds())
    s = build_serializer(current_app.config['SECRET_KEY'])
    try:
        data = s.loads(token, max_age=max_age)
    except SignatureExpired:
        return None
    except BadSignature:
        return None
    if not isinstance(data, dict) or 'id' not in data:
        return None
    return data


@with_db_resilience(max_retries=2, backoff_ms=100)
def find_user_by_email(email: str) -> User | None:
    return User.query.filter_by(email=email).first()


@with_db_resilience(max_retries=2, backoff_ms=100)
def load_user_from_token(token: str) -> User | None:
    payload = verify_token(token)
    if payload is None:
        return None
    try:
        user = db.session.get(User, int(payload['id']))
    except (TypeError, ValueError):
        return None
    if user is None or not user.is_active:
        return None
    return user


def signup(first_name: str, last_name: str, email: str, password: str) -> User:
    email = (email or '').strip().lower()
    if find_user_by_email(email) is not None:
        raise Conflict('User already exists with this email')

    user = User(
        first_name=first_name.strip(),
        last_name=(last_name or '').strip(),
        email=email,
        role=Role.USER.value,
        package=PackageTier.FREE.value,
    )
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('User already exists with this email')

    logger.info('New account created: %s', email)
    return user


def signin(email: str, password: str) -> User:
    """Authenticate; the same error is raised for unknown email and bad password."""

    email = (email or '').strip().lower()
    user = find_user_by_email(email)
    if user is None or not user.is_active or not user.check_password(password):
        logger.info('Failed sign-in for %s', email)
        raise InvalidCredentials('Invalid email or password')

    user.last_login = datetime.utcnow()
    db.session.commit()
    return user


def update_profile(user: User, first_name=None, last_name=None, phone_number=None) -> User:
    if first_name is not None:
        first_name = first_name.strip()
        if len(first_name) < 2:
            raise ValidationFailed('First name must be at least 2 characters')
        user.first_name = first_name

    if last_name is not None:
        user.last_name = last_name.strip()

    if phone_number is not None:
        phone_number = re.sub(r'\D', '', phone_number)
        if phone_number and not PHONE_RE.match(phone_number):
            raise ValidationFailed('Please provide a valid 10-digit phone number')
        user.phone_number = phone_number or None

    db.session.commit()
    return user

"""Test configuration and fixtures."""

import os
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from portal import create_app
from portal.extensions import db as _db, limiter
from portal.models import Category, Task, User
from portal.services.auth_service import issue_token


@pytest.fixture
def app():
    """Create application for testing.

    The app context is not held open across the test so each request gets
    its own context (and its own ``g``), as in production.
    """
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(db_fd)

    app = create_app('testing', {
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
    })

    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()

    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def make_limited_app():
    """Factory for apps with rate limiting switched on."""
    created = []

    def _make(**overrides):
        db_fd, db_path = tempfile.mkstemp(suffix='.db')
        os.close(db_fd)
        limited = create_app('testing', {
            'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
            'SECRET_KEY': 'test-secret-key',
            'RATELIMIT_ENABLED': True,
            **overrides,
        })
        with limited.app_context():
            _db.create_all()
            limiter.reset()
        created.append((limited, db_path))
        return limited

    yield _make

    for limited, db_path in created:
        with limited.app_context():
            _db.drop_all()
            _db.engine.dispose()
        Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def client(app):
    """Test client for making requests."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def db(app):
    """Database fixture bound to an open app context."""
    with app.app_context():
        yield _db
        _db.session.remove()


@pytest.fixture
def make_user(app):
    """Factory returning the id of a freshly created user."""
    counter = {'n': 0}

    def _make(email=None, role='user', package='free', activated_at=None, expires_at=None,
              password='secret123', first_name='Test'):
        counter['n'] += 1
        email = email or f"user{counter['n']}@example.com"
        with app.app_context():
            user = User(
                first_name=first_name,
                last_name='User',
                email=email,
                role=role,
                package=package,
                package_activated_at=activated_at,
                package_expires_at=expires_at,
            )
            user.set_password(password)
            _db.session.add(user)
            _db.session.commit()
            return user.id

    return _make


@pytest.fixture
def auth_headers(app):
    """Build a bearer header for a user id."""

    def _headers(user_id):
        with app.app_context():
            user = _db.session.get(User, user_id)
            return {'Authorization': f'Bearer {issue_token(user)}'}

    return _headers


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user(email='admin@example.com', role='admin'))


@pytest.fixture
def paid_expiry():
    """An expiry comfortably in the future (naive UTC, as stored)."""
    return datetime(2099, 1, 1)


@pytest.fixture
def seeded_category(app):
    with app.app_context():
        category = Category(key='beforeArrival', display_name='Before Arrival', order=1)
        _db.session.add(category)
        _db.session.commit()
        return category.id


@pytest.fixture
def make_task(app):
    counter = {'n': 0}

    def _make(category_id, title=None, order=None, is_active=True):
        counter['n'] += 1
        with app.app_context():
            task = Task(
                key=f"task-{counter['n']}",
                title=title or f"Task {counter['n']}",
                description='Do the thing',
                category_id=category_id,
                order=order if order is not None else counter['n'],
                is_active=is_active,
            )
            _db.session.add(task)
            _db.session.commit()
            return task.id

    return _make

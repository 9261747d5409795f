"""
Database resilience utilities for handling transient connection issues.

`with_db_resilience` retries read paths (credential lookups, token
identity loads) when the connection pool hands out a stale connection.
Writes are never retried here; they commit once and roll back on failure.
"""

import functools
import time

from flask import current_app
from sqlalchemy.exc import DBAPIError, OperationalError

from portal.extensions import db


def with_db_resilience(max_retries=2, backoff_ms=100):
    """
    Decorator that retries a database read on transient errors.

    Args:
        max_retries: Maximum number of retry attempts (default: 2)
        backoff_ms: Base delay between attempts, doubled on each retry

    Usage:
        @with_db_resilience(max_retries=3, backoff_ms=200)
        def find_user(email):
            return User.query.filter_by(email=email).first()
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except (OperationalError, DBAPIError) as exc:
                    db.session.rollback()

                    if attempt >= max_retries:
                        current_app.logger.error(
                            'Database read failed after %d attempts in %s: %s',
                            max_retries + 1,
                            func.__name__,
                            exc,
                            exc_info=True,
                        )
                        raise

                    db.engine.dispose()
                    current_app.logger.warning(
                        'Transient DB error in %s (attempt %d/%d), retrying: %s',
                        func.__name__,
                        attempt + 1,
                        max_retries + 1,
                        exc,
                    )
                    time.sleep((backoff_ms * (2 ** attempt)) / 1000.0)
        return wrapper
    return decorator

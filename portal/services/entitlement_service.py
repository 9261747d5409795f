"""Lazy package-expiry enforcement.

Expiry is checked on the request path, never by a background sweeper:

1. `is_package_expired` decides (pure, see `portal.domain.entitlement`).
2. `enforce_expiry` persists the downgraded record with a single write.
3. `check_and_update_entitlement` combines both and fails open when the
   write cannot be made, so a storage outage never locks a user out of
   what they already had.

Downgrades are idempotent: concurrent requests for the same expired user
all write the same `{free, None, None}` state.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from portal.domain.entitlement import (
    EntitlementRecord,
    downgrade_to_free,
    is_package_expired,
)
from portal.extensions import db


logger = logging.getLogger(__name__)


class EntitlementPersistenceError(RuntimeError):
    """The downgraded record could not be written back."""


class EntitlementStore(Protocol):
    def save(self, record: EntitlementRecord) -> None:
        ...


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SqlAlchemyEntitlementStore:
    """Writes entitlement fields onto the `users` row in one commit."""

    def save(self, record: EntitlementRecord) -> None:
        from portal.models import User

        try:
            user = db.session.get(User, record.user_id)
            if user is None:
                raise EntitlementPersistenceError(f'User {record.user_id} no longer exists')
            user.package = record.package.value
            user.package_activated_at = _naive_utc(record.package_activated_at)
            user.package_expires_at = _naive_utc(record.package_expires_at)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise EntitlementPersistenceError(f'Could not save entitlement for user {record.user_id}') from exc


def enforce_expiry(record: EntitlementRecord, store: EntitlementStore) -> EntitlementRecord:
    """Downgrade `record` to free and persist it. The input is not mutated."""

    downgraded = downgrade_to_free(record)
    try:
        store.save(downgraded)
    except EntitlementPersistenceError:
        raise
    except Exception as exc:
        raise EntitlementPersistenceError(str(exc)) from exc

    logger.warning(
        'Package expired for user %s (%s): %s -> free',
        record.user_id,
        record.email,
        record.package.value,
        extra={'transition': 'automatic', 'user_id': record.user_id},
    )
    return downgraded


def check_and_update_entitlement(
    record: EntitlementRecord,
    store: EntitlementStore,
    now: Optional[datetime] = None,
) -> EntitlementRecord:
    """Return the record to authorize against, downgrading it if expired."""

    if not is_package_expired(record, now):
        return record

    try:
        return enforce_expiry(record, store)
    except EntitlementPersistenceError:
        logger.error(
            'Could not persist expiry downgrade for user %s; continuing with stored state',
            record.user_id,
            exc_info=True,
            extra={'transition': 'automatic', 'user_id': record.user_id},
        )
        return record

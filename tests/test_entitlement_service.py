import logging
from datetime import datetime, timedelta, timezone

import pytest

from portal.domain.entitlement import EntitlementRecord
from portal.domain.enums import PackageTier, Role
from portal.extensions import db as _db
from portal.models import User
from portal.services.entitlement_service import (
    EntitlementPersistenceError,
    SqlAlchemyEntitlementStore,
    check_and_update_entitlement,
    enforce_expiry,
)


UTC = timezone.utc


class RecordingStore:
    def __init__(self):
        self.saved = []

    def save(self, record):
        self.saved.append(record)


class BrokenStore:
    def __init__(self, exc):
        self.exc = exc
        self.calls = 0

    def save(self, record):
        self.calls += 1
        raise self.exc


def _record(package='essential', role='user', expires_at=None):
    return EntitlementRecord(
        user_id=7,
        email='expiring@example.com',
        role=Role(role),
        package=PackageTier(package),
        package_activated_at=datetime(2024, 1, 1, tzinfo=UTC) if expires_at else None,
        package_expires_at=expires_at,
    )


def test_expired_record_is_written_exactly_once():
    store = RecordingStore()
    r = _record(expires_at=datetime(2025, 1, 1, tzinfo=UTC))

    result = check_and_update_entitlement(r, store, now=datetime(2025, 1, 2, tzinfo=UTC))

    assert result.package is PackageTier.FREE
    assert result.package_expires_at is None
    assert len(store.saved) == 1
    assert store.saved[0] == result


def test_current_record_is_not_written():
    store = RecordingStore()
    r = _record(expires_at=datetime(2025, 1, 1, tzinfo=UTC))

    result = check_and_update_entitlement(r, store, now=datetime(2024, 12, 31, tzinfo=UTC))

    assert result is r
    assert store.saved == []


def test_admin_and_free_are_never_written():
    store = RecordingStore()
    past = datetime(2020, 1, 1, tzinfo=UTC)

    check_and_update_entitlement(_record(role='admin', expires_at=past), store)
    check_and_update_entitlement(_record(package='free'), store)

    assert store.saved == []


def test_repeated_checks_converge_on_the_same_state():
    store = RecordingStore()
    r = _record(expires_at=datetime(2025, 1, 1, tzinfo=UTC))
    now = datetime(2025, 1, 2, tzinfo=UTC)

    first = check_and_update_entitlement(r, store, now=now)
    racing = check_and_update_entitlement(r, store, now=now)
    settled = check_and_update_entitlement(first, store, now=now)

    assert first == racing == settled
    assert store.saved == [first, racing]


def test_enforce_expiry_logs_automatic_transition(caplog):
    store = RecordingStore()
    r = _record(expires_at=datetime(2025, 1, 1, tzinfo=UTC))

    with caplog.at_level(logging.WARNING, logger='portal.services.entitlement_service'):
        enforce_expiry(r, store)

    entries = [rec for rec in caplog.records if getattr(rec, 'transition', None) == 'automatic']
    assert len(entries) == 1
    assert 'expiring@example.com' in entries[0].getMessage()
    assert entries[0].user_id == 7


def test_enforce_expiry_wraps_store_failures():
    with pytest.raises(EntitlementPersistenceError):
        enforce_expiry(_record(expires_at=datetime(2025, 1, 1, tzinfo=UTC)), BrokenStore(OSError('disk gone')))


def test_persistence_failure_fails_open(caplog):
    store = BrokenStore(EntitlementPersistenceError('write failed'))
    r = _record(expires_at=datetime(2025, 1, 1, tzinfo=UTC))

    with caplog.at_level(logging.ERROR, logger='portal.services.entitlement_service'):
        result = check_and_update_entitlement(r, store, now=datetime(2025, 1, 2, tzinfo=UTC))

    assert result is r
    assert store.calls == 1
    assert any(rec.levelno == logging.ERROR for rec in caplog.records)


def test_sqlalchemy_store_persists_downgrade(app, make_user):
    user_id = make_user(
        package='premium',
        activated_at=datetime(2024, 1, 1),
        expires_at=datetime(2025, 1, 1),
    )

    with app.app_context():
        user = _db.session.get(User, user_id)
        record = EntitlementRecord.from_user(user)
        check_and_update_entitlement(record, SqlAlchemyEntitlementStore(), now=datetime(2025, 1, 2, tzinfo=UTC))

    with app.app_context():
        user = _db.session.get(User, user_id)
        assert user.package == 'free'
        assert user.package_activated_at is None
        assert user.package_expires_at is None


def test_sqlalchemy_store_rejects_missing_user(app):
    with app.app_context():
        record = EntitlementRecord(
            user_id=999,
            email='ghost@example.com',
            role=Role.USER,
            package=PackageTier.FREE,
        )
        with pytest.raises(EntitlementPersistenceError):
            SqlAlchemyEntitlementStore().save(record)


def test_sqlalchemy_store_stores_naive_utc(app, make_user):
    user_id = make_user(package='essential', expires_at=datetime(2030, 1, 1))
    aware = datetime(2031, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

    with app.app_context():
        record = EntitlementRecord(
            user_id=user_id,
            email='x@example.com',
            role=Role.USER,
            package=PackageTier.ESSENTIAL,
            package_expires_at=aware,
        )
        SqlAlchemyEntitlementStore().save(record)

    with app.app_context():
        assert _db.session.get(User, user_id).package_expires_at == datetime(2031, 1, 1, 0, 0)

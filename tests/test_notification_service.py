from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from portal.models import Notification
from portal.services import notification_service
from portal.services.notification_service import build_content, build_message, merge_changes


T0 = datetime(2025, 3, 1, 9, 0)


def test_merge_changes_keeps_first_seen_order():
    assert merge_changes(['title', 'tips'], ['tips', 'description', 'title']) == ['title', 'tips', 'description']
    assert merge_changes(None, ['title']) == ['title']


def test_build_message_lists_at_most_three_changes():
    short = build_message('task', 'updated', 'Visa', ['title', 'tips'])
    assert short == 'The task "Visa" has been updated. Changes: title, tips.'

    long = build_message('task', 'updated', 'Visa', ['title', 'tips', 'description', 'duration'])
    assert long.endswith('Changes: title, tips, description and more.')


def test_build_content_per_action():
    assert build_content('task', 'created', 'Visa', [])[:2] == (
        'New Task Added', 'A new task "Visa" has been added to your dashboard.'
    )
    title, _, kind, priority = build_content('category', 'deleted', 'Housing', [])
    assert (title, kind, priority) == ('Category Removed', 'warning', 'high')
    assert build_content('task', 'archived', 'Visa', [])[2] == 'info'


def test_notifications_merge_inside_window(db, make_user):
    user_id = make_user()

    notification_service.notify_entity_change('task', 5, 'updated', 'Visa', ['title'], now=T0)
    touched = notification_service.notify_entity_change(
        'task', 5, 'updated', 'Visa', ['tips', 'title'], now=T0 + timedelta(minutes=4)
    )

    assert touched == 1
    notes = Notification.query.filter_by(user_id=user_id).all()
    assert len(notes) == 1
    assert notes[0].changes == ['title', 'tips']
    assert notes[0].updated_at == T0 + timedelta(minutes=4)
    assert notes[0].created_at == T0


def test_notifications_do_not_merge_outside_window(db, make_user):
    make_user()

    notification_service.notify_entity_change('task', 5, 'updated', 'Visa', ['title'], now=T0)
    notification_service.notify_entity_change('task', 5, 'updated', 'Visa', ['tips'], now=T0 + timedelta(minutes=6))

    assert Notification.query.count() == 2


def test_different_actions_or_entities_do_not_merge(db, make_user):
    make_user()

    notification_service.notify_entity_change('task', 5, 'updated', 'Visa', ['title'], now=T0)
    notification_service.notify_entity_change('task', 5, 'deleted', 'Visa', now=T0)
    notification_service.notify_entity_change('task', 6, 'updated', 'Bank', ['title'], now=T0)
    notification_service.notify_entity_change('category', 5, 'updated', 'Visa', ['title'], now=T0)

    assert Notification.query.count() == 4


def test_one_notification_per_regular_user(db, make_user):
    make_user()
    make_user()
    make_user(role='admin')

    assert notification_service.notify_entity_change('category', 1, 'created', 'Housing', now=T0) == 2


def test_failures_are_swallowed_and_logged(db, make_user, monkeypatch, caplog):
    make_user()

    def broken_commit():
        raise OperationalError('INSERT', {}, Exception('database is locked'))

    monkeypatch.setattr(db.session, 'commit', broken_commit)

    assert notification_service.notify_entity_change('task', 1, 'created', 'Visa', now=T0) == 0
    assert notification_service.notify_category_move('Visa', 'A', 'B') == 0
    assert 'Failed to record' in caplog.text


def test_cleanup_removes_only_old_notifications(db, make_user):
    user_id = make_user()
    db.session.add_all([
        Notification(user_id=user_id, title='old', message='m', created_at=T0 - timedelta(days=8)),
        Notification(user_id=user_id, title='fresh', message='m', created_at=T0 - timedelta(days=6)),
    ])
    db.session.commit()

    assert notification_service.cleanup_expired_notifications(now=T0) == 1
    assert [n.title for n in Notification.query.all()] == ['fresh']

"""User notifications for checklist content changes.

Admin edits fan out one notification per regular user. Repeated edits to the
same entity within the merge window update the existing notification
instead of stacking new ones. Nothing in this module raises into the caller:
a failed notification is logged and rolled back, and the content change
that triggered it stands.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from portal.domain.enums import NotificationPriority, NotificationType, Role
from portal.errors import NotFound, ValidationFailed
from portal.extensions import db
from portal.models import Notification, User
from portal.utils.sanitize import sanitize_string, sanitize_url


logger = logging.getLogger(__name__)

TITLE_MAX = 100
MESSAGE_MAX = 500
MAX_LISTED_CHANGES = 3


def _merge_window() -> timedelta:
    return current_app.config.get('NOTIFICATION_MERGE_WINDOW', timedelta(minutes=5))


def _retention() -> timedelta:
    return current_app.config.get('NOTIFICATION_RETENTION', timedelta(days=7))


def merge_changes(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Order-preserving union."""
    merged: List[str] = []
    for change in list(existing or []) + list(new or []):
        if change not in merged:
            merged.append(change)
    return merged


def build_message(entity_type: str, action: str, entity_name: str, changes: Sequence[str]) -> str:
    if action == 'updated' and changes:
        if len(changes) > MAX_LISTED_CHANGES:
            listed = ', '.join(changes[:MAX_LISTED_CHANGES]) + ' and more'
        else:
            listed = ', '.join(changes)
        return f'The {entity_type} "{entity_name}" has been updated. Changes: {listed}.'
    return f'The {entity_type} "{entity_name}" has been {action}.'


def build_content(entity_type: str, action: str, entity_name: str, changes: Sequence[str]):
    """Return (title, message, type, priority) for a fresh notification."""

    label = 'Task' if entity_type == 'task' else 'Category'
    priority = NotificationPriority.HIGH if action == 'deleted' else NotificationPriority.MEDIUM

    if action == 'created':
        return (
            f'New {label} Added',
            f'A new {entity_type} "{entity_name}" has been added to your dashboard.',
            NotificationType.SUCCESS,
            priority,
        )
    if action == 'updated':
        return (
            f'{label} Updated',
            build_message(entity_type, action, entity_name, changes),
            NotificationType.UPDATE,
            priority,
        )
    if action == 'deleted':
        return (
            f'{label} Removed',
            f'The {entity_type} "{entity_name}" has been removed from your dashboard.',
            NotificationType.WARNING,
            priority,
        )
    return (
        f'{label} Changed',
        f'The {entity_type} "{entity_name}" has been modified.',
        NotificationType.INFO,
        priority,
    )


def _recipients() -> List[User]:
    return User.query.filter_by(role=Role.USER.value).all()


def notify_entity_change(
    entity_type: str,
    entity_id,
    action: str,
    entity_name: str,
    changes: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> int:
    """Create or merge a change notification for every regular user.

    Returns the number of notifications created or updated (0 on failure).
    """

    changes = list(changes or [])
    now = now or datetime.utcnow()
    since = now - _merge_window()
    entity_id = str(entity_id)
    touched = 0

    try:
        for user in _recipients():
            recent = (
                Notification.query.filter(
                    Notification.user_id == user.id,
                    Notification.entity_type == entity_type,
                    Notification.entity_id == entity_id,
                    Notification.action == action,
                    Notification.created_at >= since,
                )
                .order_by(Notification.created_at.desc())
                .first()
            )

            if recent is not None:
                merged = merge_changes(recent.changes, changes)
                recent.changes = merged
                recent.message = build_message(entity_type, action, entity_name, merged)[:MESSAGE_MAX]
                recent.updated_at = now
            else:
                title, message, kind, priority = build_content(entity_type, action, entity_name, changes)
                db.session.add(
                    Notification(
                        user_id=user.id,
                        title=title[:TITLE_MAX],
                        message=message[:MESSAGE_MAX],
                        type=kind,
                        priority=priority,
                        entity_type=entity_type,
                        entity_id=entity_id,
                        action=action,
                        changes=changes,
                        created_at=now,
                        updated_at=now,
                    )
                )
            touched += 1
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.error('Failed to record %s %s notification for %s', entity_type, action, entity_id, exc_info=True)
        return 0

    return touched


def notify_category_move(task_name: str, old_category_name: str, new_category_name: str) -> int:
    try:
        users = _recipients()
        for user in users:
            db.session.add(
                Notification(
                    user_id=user.id,
                    title='Task Moved',
                    message=(
                        f'The task "{task_name}" has been moved from '
                        f'"{old_category_name}" to "{new_category_name}".'
                    )[:MESSAGE_MAX],
                    type=NotificationType.INFO,
                    priority=NotificationPriority.LOW,
                )
            )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.error('Failed to record category move notification for %s', task_name, exc_info=True)
        return 0
    return len(users)


def cleanup_expired_notifications(now: Optional[datetime] = None) -> int:
    """Delete notifications older than the retention period."""

    cutoff = (now or datetime.utcnow()) - _retention()
    try:
        deleted = Notification.query.filter(Notification.created_at < cutoff).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.error('Notification cleanup failed', exc_info=True)
        return 0
    return deleted


# -- user side ---------------------------------------------------------------


def list_for_user(user: User, limit: Optional[int] = None, unread_only: bool = False, now: Optional[datetime] = None):
    now = now or datetime.utcnow()
    default = current_app.config.get('NOTIFICATION_PAGE_SIZE', 10)
    if not limit or limit < 1:
        limit = default
    limit = min(limit, current_app.config.get('NOTIFICATION_MAX_PAGE_SIZE', 50))

    base = Notification.query.filter(
        Notification.user_id == user.id,
        db.or_(Notification.expires_at.is_(None), Notification.expires_at > now),
    )
    unread_count = base.filter(Notification.is_read.is_(False)).count()

    query = base.filter(Notification.is_read.is_(False)) if unread_only else base
    items = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
    return items, unread_count


def set_read(user: User, notification_id, is_read: bool = True) -> Notification:
    try:
        notification_id = int(notification_id)
    except (TypeError, ValueError):
        raise ValidationFailed('Notification ID is required')

    notification = Notification.query.filter_by(id=notification_id, user_id=user.id).first()
    if notification is None:
        raise NotFound('Notification not found')

    notification.is_read = bool(is_read)
    db.session.commit()
    return notification


def mark_all_read(user: User, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    updated = (
        Notification.query.filter_by(user_id=user.id, is_read=False)
        .update({'is_read': True, 'updated_at': now}, synchronize_session=False)
    )
    user.last_notification_read_at = now
    db.session.commit()
    return updated


# -- admin broadcast ---------------------------------------------------------


def list_recipients() -> List[User]:
    return User.query.filter_by(role=Role.USER.value).order_by(User.first_name, User.last_name).all()


def send_custom_notification(
    title,
    message,
    type=NotificationType.INFO,
    priority=NotificationPriority.MEDIUM,
    action_url=None,
    target_user_ids=None,
) -> int:
    """Send an admin-authored notification to regular users only."""

    if not title or not message:
        raise ValidationFailed('Title and message are required')

    clean_title = sanitize_string(title, TITLE_MAX)
    clean_message = sanitize_string(message, MESSAGE_MAX)
    if not clean_title or not clean_message:
        raise ValidationFailed('Title and message are required')

    if type not in NotificationType.ALL:
        raise ValidationFailed('Invalid notification type')
    if priority not in NotificationPriority.ALL:
        raise ValidationFailed('Invalid priority level')

    clean_url = None
    if action_url:
        clean_url = sanitize_url(action_url, current_app.config.get('ACTION_URL_ALLOWED_HOSTS', ()))
        if clean_url is None:
            raise ValidationFailed('Invalid or unauthorized action URL')

    query = User.query.filter_by(role=Role.USER.value)
    if target_user_ids:
        try:
            ids = [int(i) for i in target_user_ids]
        except (TypeError, ValueError):
            raise ValidationFailed('target_user_ids must be a list of user IDs')
        users = query.filter(User.id.in_(ids)).all()
        if not users:
            raise NotFound('No valid users found with provided IDs')
    else:
        users = query.all()
        if not users:
            raise NotFound('No users found to notify')

    for user in users:
        db.session.add(
            Notification(
                user_id=user.id,
                title=clean_title,
                message=clean_message,
                type=type,
                priority=priority,
                action_url=clean_url,
                action_required=bool(clean_url),
            )
        )
    db.session.commit()

    logger.info('Custom notification "%s" sent to %d users', clean_title, len(users))
    return len(users)

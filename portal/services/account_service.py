"""Admin-side account bookkeeping: search, package assignment, deletion."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from portal.domain.entitlement import EntitlementRecord, has_active_paid_plan
from portal.domain.enums import PackageTier, Role
from portal.errors import NotFound, ValidationFailed
from portal.extensions import db
from portal.models import User
from portal.services import stats_service


logger = logging.getLogger(__name__)


@dataclass
class UserPage:
    users: List[User] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    per_page: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.per_page) if self.per_page else 0

    def as_dict(self) -> dict:
        return {
            'users': [u.to_dict() for u in self.users],
            'total_count': self.total_count,
            'page': self.page,
            'total_pages': self.total_pages,
            'has_next_page': self.page < self.total_pages,
            'has_previous_page': self.page > 1,
        }


def search_users(email_fragment: str, page: int = 1, per_page: Optional[int] = None) -> UserPage:
    """Case-insensitive partial email match over role `user`, newest first."""

    per_page = per_page or current_app.config.get('USERS_PER_PAGE', 10)
    page = max(1, page or 1)
    fragment = (email_fragment or '').strip()
    if not fragment:
        return UserPage(page=1, per_page=per_page)

    query = User.query.filter(
        User.role == Role.USER.value,
        User.email.ilike(f'%{fragment}%'),
    )
    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return UserPage(users=users, total_count=total, page=page, per_page=per_page)


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')
    return user


def assign_package(user_id: int, package_value, acting_admin: Optional[User] = None):
    """Set a user's tier. Paid tiers run for PAID_PACKAGE_DURATION from now."""

    try:
        new_package = PackageTier.parse(package_value)
    except ValueError:
        raise ValidationFailed('Invalid package type')

    user = get_user(user_id)
    old_package = PackageTier.parse(user.package)

    user.package = new_package.value
    if new_package.is_paid:
        now = datetime.utcnow()
        user.package_activated_at = now
        user.package_expires_at = now + current_app.config['PAID_PACKAGE_DURATION']
    else:
        user.package_activated_at = None
        user.package_expires_at = None

    stats = stats_service.record_package_change(old_package, new_package)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.error('Package update failed for user %s', user_id, exc_info=True)
        raise

    logger.info(
        'Package for user %s changed %s -> %s by %s',
        user.id,
        old_package.value,
        new_package.value,
        acting_admin.email if acting_admin else 'system',
        extra={'transition': 'admin', 'user_id': user.id},
    )
    return user, stats.paid_user_count


def delete_user(user_id: int, now: Optional[datetime] = None) -> None:
    user = get_user(user_id)
    if has_active_paid_plan(EntitlementRecord.from_user(user), now):
        raise ValidationFailed('Cannot delete user with active plan')

    email = user.email
    db.session.delete(user)
    db.session.commit()
    logger.info('Deleted user %s (%s)', user_id, email)


def create_admin(email: str, password: str, first_name: str = 'Admin', last_name: str = '') -> User:
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, first_name=first_name, last_name=last_name)
        db.session.add(user)
    user.role = Role.ADMIN.value
    user.is_active = True
    user.set_password(password)
    db.session.commit()
    return user

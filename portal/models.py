"""
Database Models for the Relocation Portal

This module defines all database models using SQLAlchemy ORM.
Models include User, Category, Task, progress tracking, Notification
and the SiteStats counter row.
"""

from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from portal.extensions import db, login_manager
from portal.domain.enums import (
    Difficulty,
    NotificationPriority,
    NotificationType,
    PackageTier,
    Role,
)


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login"""
    if user_id is None:
        return None
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


class User(UserMixin, db.Model):
    """Customer or administrator account.

    Holds the entitlement fields (`package`, `package_activated_at`,
    `package_expires_at`, `role`). Timestamps are stored as naive UTC.
    """

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False, default='')
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone_number = db.Column(db.String(20))
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=Role.USER.value, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Entitlement
    package = db.Column(db.String(20), nullable=False, default=PackageTier.FREE.value, index=True)
    package_activated_at = db.Column(db.DateTime)
    package_expires_at = db.Column(db.DateTime)

    last_notification_read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    completed_tasks = db.relationship('CompletedTask', backref='user', lazy='dynamic', cascade='all, delete-orphan')
    progress = db.relationship('UserProgress', backref='user', uselist=False, cascade='all, delete-orphan')
    notifications = db.relationship('Notification', backref='user', lazy='dynamic', cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set user password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash or not password:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN.value

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'phone_number': self.phone_number,
            'role': self.role,
            'package': self.package,
            'package_activated_at': _iso(self.package_activated_at),
            'package_expires_at': _iso(self.package_expires_at),
            'created_at': _iso(self.created_at),
            'last_login': _iso(self.last_login),
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Category(db.Model):
    """Checklist category (for example "Before Departure")."""

    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(80), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(500), default='')
    icon = db.Column(db.String(50), default='circle')
    color = db.Column(db.String(20), default='#3B82F6')
    order = db.Column(db.Integer, nullable=False, default=0, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    estimated_time_frame = db.Column(db.String(40))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tasks = db.relationship(
        'Task',
        backref='category',
        lazy='dynamic',
        cascade='all, delete-orphan',
    )

    def to_dict(self, task_count=None):
        data = {
            'id': self.id,
            'key': self.key,
            'display_name': self.display_name,
            'description': self.description or '',
            'icon': self.icon,
            'color': self.color,
            'order': self.order,
            'is_active': bool(self.is_active),
            'estimated_time_frame': self.estimated_time_frame,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if task_count is not None:
            data['task_count'] = task_count
        return data

    def __repr__(self):
        return f'<Category {self.key}>'


class Task(db.Model):
    """Checklist task belonging to one category."""

    __tablename__ = 'tasks'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(80), unique=True, nullable=False, index=True)
    title = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    category_id = db.Column(
        db.Integer,
        db.ForeignKey('categories.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    order = db.Column(db.Integer, nullable=False, default=0)
    is_required = db.Column(db.Boolean, default=False, nullable=False)
    estimated_duration = db.Column(db.String(40))
    difficulty = db.Column(db.String(10), default=Difficulty.MEDIUM, nullable=False)
    tips = db.Column(db.JSON, default=list)
    requirements = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    links = db.relationship(
        'TaskLink',
        backref='task',
        order_by='TaskLink.position',
        cascade='all, delete-orphan',
    )
    completions = db.relationship(
        'CompletedTask',
        backref='task',
        lazy='dynamic',
        cascade='all, delete-orphan',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'title': self.title,
            'description': self.description,
            'category_id': self.category_id,
            'category': self.category.to_dict() if self.category else None,
            'order': self.order,
            'is_required': bool(self.is_required),
            'estimated_duration': self.estimated_duration,
            'difficulty': self.difficulty,
            'tips': list(self.tips or []),
            'requirements': list(self.requirements or []),
            'helpful_links': [link.to_dict() for link in self.links],
            'is_active': bool(self.is_active),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Task {self.key}>'


class TaskLink(db.Model):
    __tablename__ = 'task_links'

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    description = db.Column(db.String(200), default='')
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {'title': self.title, 'url': self.url, 'description': self.description or ''}


class CompletedTask(db.Model):
    __tablename__ = 'completed_tasks'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'task_id', name='uq_completed_tasks_user_task'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    task_id = db.Column(db.Integer, db.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class UserProgress(db.Model):
    """Cached completion percentages for one user."""

    __tablename__ = 'user_progress'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)
    overall_progress = db.Column(db.Integer, default=0, nullable=False)
    category_progress = db.Column(db.JSON, default=dict)
    last_updated = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self, completed_task_ids=None):
        return {
            'user_id': self.user_id,
            'overall_progress': self.overall_progress or 0,
            'category_progress': dict(self.category_progress or {}),
            'completed_tasks': list(completed_task_ids or []),
            'last_updated': _iso(self.last_updated),
        }


class Notification(db.Model):
    __tablename__ = 'notifications'
    __table_args__ = (
        db.Index('ix_notifications_entity', 'entity_type', 'entity_id', 'action'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    message = db.Column(db.String(500), nullable=False)
    type = db.Column(db.String(20), default=NotificationType.INFO, nullable=False)
    priority = db.Column(db.String(10), default=NotificationPriority.MEDIUM, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False, index=True)
    action_required = db.Column(db.Boolean, default=False, nullable=False)
    action_url = db.Column(db.String(500))
    expires_at = db.Column(db.DateTime)

    # Merge metadata for content change notifications
    entity_type = db.Column(db.String(20))
    entity_id = db.Column(db.String(40))
    action = db.Column(db.String(20))
    changes = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'message': self.message,
            'type': self.type,
            'priority': self.priority,
            'is_read': bool(self.is_read),
            'action_required': bool(self.action_required),
            'action_url': self.action_url,
            'expires_at': _iso(self.expires_at),
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'action': self.action,
            'changes': list(self.changes or []),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Notification {self.id} user={self.user_id}>'


class SiteStats(db.Model):
    """Singleton counters row (id ``global-stats``)."""

    __tablename__ = 'site_stats'

    GLOBAL_ID = 'global-stats'

    id = db.Column(db.String(40), primary_key=True)
    paid_user_count = db.Column(db.Integer, default=0, nullable=False)
    last_updated = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def _iso(value):
    if value is None:
        return None
    return value.isoformat() + ('Z' if value.tzinfo is None else '')

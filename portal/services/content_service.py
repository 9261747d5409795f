"""Checklist content management (categories and tasks).

Every mutation commits first and notifies afterwards, so a notification
failure never rolls back an admin's edit.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flask import current_app
from sqlalchemy import func

from portal.domain import content_policy as policy
from portal.domain.enums import Difficulty
from portal.domain.seed_content import SEED_CATEGORIES, SEED_TASKS
from portal.errors import NotFound, ValidationFailed
from portal.extensions import db
from portal.models import Category, Task, TaskLink
from portal.services import notification_service


logger = logging.getLogger(__name__)


def _raise_first(issues) -> None:
    if issues:
        raise ValidationFailed(issues[0].message)


def _max_categories() -> int:
    return current_app.config.get('MAX_CATEGORIES', 6)


def _max_tasks() -> int:
    return current_app.config.get('MAX_TASKS_PER_CATEGORY', 12)


def _string_list(value, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed(f'{field_name} must be a list')
    return [str(item).strip() for item in value if str(item).strip()]


# -- categories --------------------------------------------------------------


def list_categories(active_only: bool = False) -> List[Category]:
    query = Category.query
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Category.order.asc(), Category.id.asc()).all()


def get_category(category_id) -> Category:
    category = db.session.get(Category, _as_id(category_id, 'Category'))
    if category is None:
        raise NotFound('Category not found')
    return category


def _name_taken(display_name: str, exclude_id: Optional[int] = None) -> bool:
    query = Category.query.filter(func.lower(Category.display_name) == display_name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def create_category(data: Mapping[str, Any]) -> Category:
    display_name = data.get('display_name')
    _raise_first(
        policy.check_category_fields(
            display_name,
            data.get('estimated_time_frame'),
            data.get('description'),
            require_name=True,
        )
    )

    if Category.query.count() >= _max_categories():
        raise ValidationFailed(f'Maximum of {_max_categories()} categories allowed')

    display_name = display_name.strip()
    key = policy.category_key(display_name)
    if _name_taken(display_name) or Category.query.filter_by(key=key).first() is not None:
        raise ValidationFailed('A category with this name already exists')

    max_order = db.session.query(func.max(Category.order)).scalar() or 0
    category = Category(
        key=key,
        display_name=display_name,
        description=data.get('description') or '',
        icon=data.get('icon') or policy.DEFAULT_CATEGORY_ICON,
        color=data.get('color') or policy.DEFAULT_CATEGORY_COLOR,
        order=max_order + 1,
        estimated_time_frame=data.get('estimated_time_frame') or None,
    )
    db.session.add(category)
    db.session.commit()
    logger.info('Category created: %s', category.key)

    notification_service.notify_entity_change('category', category.id, 'created', category.display_name)
    return category


_CATEGORY_CHANGE_LABELS = (
    ('display_name', 'name'),
    ('description', 'description'),
    ('icon', 'icon'),
    ('color', 'color'),
    ('estimated_time_frame', 'timeframe'),
)


def update_category(category_id, data: Mapping[str, Any]) -> Category:
    category = get_category(category_id)

    _raise_first(
        policy.check_category_fields(
            data.get('display_name') if 'display_name' in data else None,
            data.get('estimated_time_frame'),
            data.get('description'),
        )
    )
    if 'display_name' in data and data['display_name'] is None:
        _raise_first(policy.check_category_fields('', require_name=True))

    if 'display_name' in data and _name_taken(data['display_name'], exclude_id=category.id):
        raise ValidationFailed('A category with this name already exists')

    changes = [
        label for field_name, label in _CATEGORY_CHANGE_LABELS
        if field_name in data and data[field_name] != getattr(category, field_name)
    ]

    if 'display_name' in data:
        category.display_name = data['display_name'].strip()
    for field_name in ('description', 'icon', 'color', 'estimated_time_frame'):
        if field_name in data:
            setattr(category, field_name, data[field_name])
    if 'order' in data:
        category.order = _as_int(data['order'], 'order')
    if 'is_active' in data:
        category.is_active = bool(data['is_active'])

    db.session.commit()

    if changes:
        notification_service.notify_entity_change(
            'category', category.id, 'updated', category.display_name, changes
        )
    return category


def delete_category(category_id) -> int:
    """Delete a category and its tasks. Returns the number of tasks removed."""

    category = get_category(category_id)
    if Category.query.count() <= 1:
        raise ValidationFailed('Cannot delete the last category. Minimum 1 category required.')

    name = category.display_name
    entity_id = category.id
    task_count = category.tasks.count()

    db.session.delete(category)
    db.session.commit()
    if task_count:
        logger.info('Deleted %d task(s) with category %s', task_count, name)

    notification_service.notify_entity_change('category', entity_id, 'deleted', name)
    return task_count


def reorder_categories(items: Iterable[Mapping[str, Any]]) -> None:
    """Batch-assign orders from a list of ``{"id": ..., "order": ...}``."""

    for item in _order_items(items, 'categories'):
        category = db.session.get(Category, item[0])
        if category is not None:
            category.order = item[1]
    db.session.commit()


def move_category(category_id, new_order) -> List[Category]:
    category = get_category(category_id)
    new_order = _position(new_order)
    old_order = category.order
    if new_order != old_order:
        _shift(Category.query, Category.order, old_order, new_order)
        category.order = new_order
        db.session.commit()
    return list_categories()


# -- tasks ---------------------------------------------------------------------


def list_tasks(category_id=None, active_only: bool = False) -> List[Task]:
    query = Task.query
    if category_id not in (None, ''):
        query = query.filter_by(category_id=_as_id(category_id, 'Category'))
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Task.category_id.asc(), Task.order.asc(), Task.id.asc()).all()


def get_task(task_id) -> Task:
    task = db.session.get(Task, _as_id(task_id, 'Task'))
    if task is None:
        raise NotFound('Task not found')
    return task


def _replace_links(task: Task, links: List[policy.HelpfulLink]) -> None:
    task.links = [
        TaskLink(title=link.title, url=link.url, description=link.description, position=index)
        for index, link in enumerate(links)
    ]


def _check_difficulty(value) -> None:
    if value is not None and value not in Difficulty.ALL:
        raise ValidationFailed('Invalid difficulty')


def _ensure_room(category_id: int) -> None:
    if Task.query.filter_by(category_id=category_id).count() >= _max_tasks():
        raise ValidationFailed(f'Maximum of {_max_tasks()} tasks per category allowed')


def create_task(data: Mapping[str, Any]) -> Task:
    title = data.get('title')
    description = data.get('description')
    if not title or not description or data.get('category_id') in (None, ''):
        raise ValidationFailed('Title, description, and category are required')

    _raise_first(
        policy.check_task_fields(title, description, data.get('estimated_duration'), require_all=True)
    )
    _check_difficulty(data.get('difficulty'))
    links, issues = policy.parse_helpful_links(data.get('helpful_links'))
    _raise_first(issues)

    category = db.session.get(Category, _as_id(data['category_id'], 'Category'))
    if category is None:
        raise ValidationFailed('Category does not exist')
    _ensure_room(category.id)

    base = policy.task_key_base(title)
    taken = [k for (k,) in db.session.query(Task.key).filter(Task.key.like(f'{base}%'))]
    max_order = (
        db.session.query(func.max(Task.order)).filter(Task.category_id == category.id).scalar() or 0
    )

    task = Task(
        key=policy.unique_key(base, taken),
        title=title.strip(),
        description=description,
        category_id=category.id,
        order=max_order + 1,
        is_required=bool(data.get('is_required', False)),
        estimated_duration=data.get('estimated_duration') or None,
        difficulty=data.get('difficulty') or Difficulty.MEDIUM,
        tips=_string_list(data.get('tips'), 'tips'),
        requirements=_string_list(data.get('requirements'), 'requirements'),
    )
    _replace_links(task, links)
    db.session.add(task)
    db.session.commit()
    logger.info('Task created: %s in %s', task.key, category.key)

    notification_service.notify_entity_change('task', task.id, 'created', task.title)
    return task


def update_task(task_id, data: Mapping[str, Any]) -> Task:
    task = get_task(task_id)

    if 'title' in data and (not data['title'] or len(data['title']) > policy.TASK_TITLE_MAX):
        raise ValidationFailed(
            f'Title is required and must be {policy.TASK_TITLE_MAX} characters or less'
        )
    _raise_first(
        policy.check_task_fields(
            None,
            data.get('description'),
            data.get('estimated_duration'),
        )
    )
    _check_difficulty(data.get('difficulty'))

    links = None
    if data.get('helpful_links') is not None:
        links, issues = policy.parse_helpful_links(data['helpful_links'])
        _raise_first(issues)

    new_category = None
    if 'category_id' in data and data['category_id'] not in (None, ''):
        target_id = _as_id(data['category_id'], 'Category')
        if target_id != task.category_id:
            new_category = db.session.get(Category, target_id)
            if new_category is None:
                raise ValidationFailed('Category does not exist')
            _ensure_room(new_category.id)

    changes: List[str] = []
    if 'title' in data and data['title'] != task.title:
        changes.append('title')
    if 'description' in data and data['description'] != task.description:
        changes.append('description')
    if new_category is not None:
        changes.append('category')
    if 'estimated_duration' in data and data['estimated_duration'] != task.estimated_duration:
        changes.append('duration')
    if 'difficulty' in data and data['difficulty'] != task.difficulty:
        changes.append('difficulty')
    if 'helpful_links' in data:
        changes.append('helpful links')
    if 'tips' in data:
        changes.append('tips')
    if 'requirements' in data:
        changes.append('requirements')

    old_category_name = task.category.display_name if task.category else ''

    if 'title' in data:
        task.title = data['title'].strip()
    if 'description' in data:
        task.description = data['description'] or ''
    if 'estimated_duration' in data:
        task.estimated_duration = data['estimated_duration'] or None
    if 'difficulty' in data:
        task.difficulty = data['difficulty'] or Difficulty.MEDIUM
    if 'is_required' in data:
        task.is_required = bool(data['is_required'])
    if 'is_active' in data:
        task.is_active = bool(data['is_active'])
    if 'tips' in data:
        task.tips = _string_list(data['tips'], 'tips')
    if 'requirements' in data:
        task.requirements = _string_list(data['requirements'], 'requirements')
    if links is not None:
        _replace_links(task, links)
    elif 'helpful_links' in data:
        _replace_links(task, [])
    if new_category is not None:
        max_order = (
            db.session.query(func.max(Task.order)).filter(Task.category_id == new_category.id).scalar() or 0
        )
        task.category_id = new_category.id
        task.order = max_order + 1
    if 'order' in data:
        task.order = _as_int(data['order'], 'order')

    db.session.commit()

    if changes:
        notification_service.notify_entity_change('task', task.id, 'updated', task.title, changes)
    if new_category is not None:
        notification_service.notify_category_move(task.title, old_category_name, new_category.display_name)
    return task


def delete_task(task_id) -> None:
    task = get_task(task_id)
    title = task.title
    entity_id = task.id

    db.session.delete(task)
    db.session.commit()

    notification_service.notify_entity_change('task', entity_id, 'deleted', title)


def reorder_tasks(items: Iterable[Mapping[str, Any]], category_id=None) -> None:
    """Batch-assign orders; with `category_id`, only tasks in that category move."""

    category_filter = _as_id(category_id, 'Category') if category_id not in (None, '') else None
    for task_id, order in _order_items(items, 'tasks'):
        task = db.session.get(Task, task_id)
        if task is None:
            continue
        if category_filter is not None and task.category_id != category_filter:
            continue
        task.order = order
    db.session.commit()


def move_task(task_id, new_order) -> List[Task]:
    """Move a task to a 1-based position, shifting its category neighbours."""

    task = get_task(task_id)
    new_order = _position(new_order)
    old_order = task.order
    if new_order != old_order:
        siblings = Task.query.filter(Task.category_id == task.category_id, Task.id != task.id)
        _shift(siblings, Task.order, old_order, new_order)
        task.order = new_order
        db.session.commit()
    return list_tasks(task.category_id)


# -- helpers -------------------------------------------------------------------


def _shift(query, column, old_order: int, new_order: int) -> None:
    if new_order < old_order:
        query.filter(column >= new_order, column < old_order).update(
            {column: column + 1}, synchronize_session=False
        )
    else:
        query.filter(column > old_order, column <= new_order).update(
            {column: column - 1}, synchronize_session=False
        )


def _position(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationFailed('Invalid order value')
    return value


def _order_items(items, label: str):
    if not isinstance(items, list):
        raise ValidationFailed(f'Invalid {label} array')
    pairs = []
    for item in items:
        if not isinstance(item, Mapping) or 'id' not in item or 'order' not in item:
            raise ValidationFailed(f'Invalid {label} array')
        pairs.append((_as_int(item['id'], 'id'), _as_int(item['order'], 'order')))
    return pairs


def _as_id(value, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise NotFound(f'{label} not found')


def _as_int(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationFailed(f'Invalid {field_name} value')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f'Invalid {field_name} value')


def seed_default_content() -> int:
    """Insert the starter checklist when no categories exist.

    No notifications are sent. Returns the number of categories created.
    """

    if Category.query.count() > 0:
        return 0

    by_key = {}
    for order, fields in enumerate(SEED_CATEGORIES, start=1):
        category = Category(order=order, **fields)
        db.session.add(category)
        by_key[category.key] = category
    db.session.flush()

    positions: Dict[str, int] = {}
    for fields in SEED_TASKS:
        fields = dict(fields)
        category = by_key[fields.pop('category')]
        links, _ = policy.parse_helpful_links(fields.pop('helpful_links', None))
        positions[category.key] = positions.get(category.key, 0) + 1
        task = Task(category_id=category.id, order=positions[category.key], **fields)
        _replace_links(task, links)
        db.session.add(task)

    db.session.commit()
    logger.info('Seeded %d categories and %d tasks', len(SEED_CATEGORIES), len(SEED_TASKS))
    return len(SEED_CATEGORIES)


def category_task_counts() -> Dict[int, int]:
    rows = db.session.query(Task.category_id, func.count(Task.id)).group_by(Task.category_id).all()
    return {category_id: count for category_id, count in rows}

"""Per-user checklist progress."""
from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

from portal.domain.content_policy import percentage
from portal.errors import NotFound, ValidationFailed
from portal.extensions import db
from portal.models import Category, CompletedTask, Task, User, UserProgress


def get_or_create_progress(user: User) -> UserProgress:
    progress = UserProgress.query.filter_by(user_id=user.id).first()
    if progress is None:
        progress = UserProgress(
            user_id=user.id,
            overall_progress=0,
            category_progress={c.key: 0 for c in Category.query.filter_by(is_active=True)},
        )
        db.session.add(progress)
        db.session.commit()
    return progress


def completed_task_ids(user: User) -> List[int]:
    rows = (
        db.session.query(CompletedTask.task_id)
        .filter(CompletedTask.user_id == user.id)
        .order_by(CompletedTask.completed_at.asc())
        .all()
    )
    return [task_id for (task_id,) in rows]


def recalculate(user: User, progress: UserProgress) -> UserProgress:
    """Recompute percentages over active tasks in active categories."""

    done = set(completed_task_ids(user))
    active_tasks = (
        db.session.query(Task.id, Category.key)
        .join(Category, Task.category_id == Category.id)
        .filter(Task.is_active.is_(True), Category.is_active.is_(True))
        .all()
    )

    per_category = {}
    for task_id, category_key in active_tasks:
        total, completed = per_category.get(category_key, (0, 0))
        per_category[category_key] = (total + 1, completed + (1 if task_id in done else 0))

    for category in Category.query.filter_by(is_active=True):
        per_category.setdefault(category.key, (0, 0))

    overall_done = sum(1 for task_id, _ in active_tasks if task_id in done)
    progress.overall_progress = percentage(overall_done, len(active_tasks))
    progress.category_progress = {
        key: percentage(completed, total) for key, (total, completed) in per_category.items()
    }
    progress.last_updated = datetime.utcnow()
    return progress


def set_task_completion(user: User, task_id, completed: bool) -> Tuple[UserProgress, List[int]]:
    try:
        task_id = int(task_id)
    except (TypeError, ValueError):
        raise ValidationFailed('Task ID is required')

    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFound('Task not found')

    progress = get_or_create_progress(user)
    existing = CompletedTask.query.filter_by(user_id=user.id, task_id=task.id).first()

    if completed and existing is None:
        db.session.add(CompletedTask(user_id=user.id, task_id=task.id, completed_at=datetime.utcnow()))
    elif not completed and existing is not None:
        db.session.delete(existing)

    db.session.flush()
    recalculate(user, progress)
    db.session.commit()
    return progress, completed_task_ids(user)


def reset_progress(user: User) -> None:
    CompletedTask.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    UserProgress.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.commit()

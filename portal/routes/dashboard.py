"""
Dashboard Blueprint - Authenticated user routes

Checklist categories and tasks, progress tracking and the notification
center. Task content and progress updates are behind the paid-plan gate.
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user

from portal.errors import ValidationFailed
from portal.routes.guards import login_required_json, paid_plan_required
from portal.services import content_service, notification_service, progress_service


dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/categories', methods=['GET'])
@login_required_json
def categories():
    content_service.seed_default_content()
    items = content_service.list_categories(active_only=True)
    return jsonify({'success': True, 'data': [c.to_dict() for c in items]})


@dashboard_bp.route('/tasks', methods=['GET'])
@paid_plan_required
def tasks():
    content_service.seed_default_content()
    grouped = {}
    for task in content_service.list_tasks(active_only=True):
        if task.category is None or not task.category.is_active:
            continue
        grouped.setdefault(str(task.category_id), []).append(task.to_dict())
    return jsonify({'success': True, 'data': grouped})


@dashboard_bp.route('/progress', methods=['GET'])
@login_required_json
def get_progress():
    user = current_user._get_current_object()
    progress = progress_service.get_or_create_progress(user)
    return jsonify({
        'success': True,
        'data': progress.to_dict(progress_service.completed_task_ids(user)),
    })


@dashboard_bp.route('/progress', methods=['PUT'])
@paid_plan_required
def update_progress():
    payload = request.get_json(silent=True) or {}
    if payload.get('task_id') in (None, '') or 'completed' not in payload:
        raise ValidationFailed('Task ID and completion status are required')

    user = current_user._get_current_object()
    progress, completed_ids = progress_service.set_task_completion(
        user, payload['task_id'], bool(payload['completed'])
    )
    return jsonify({'success': True, 'data': progress.to_dict(completed_ids)})


@dashboard_bp.route('/notifications', methods=['GET'])
@login_required_json
def list_notifications():
    limit = request.args.get('limit', type=int)
    unread_only = request.args.get('unread_only', '').lower() == 'true'
    items, unread_count = notification_service.list_for_user(
        current_user._get_current_object(), limit=limit, unread_only=unread_only
    )
    return jsonify({
        'success': True,
        'data': {
            'notifications': [n.to_dict() for n in items],
            'unread_count': unread_count,
        },
    })


@dashboard_bp.route('/notifications', methods=['PATCH'])
@login_required_json
def mark_notification():
    payload = request.get_json(silent=True) or {}
    if not payload.get('notification_id'):
        raise ValidationFailed('Notification ID is required')

    notification = notification_service.set_read(
        current_user._get_current_object(),
        payload['notification_id'],
        payload.get('is_read', True),
    )
    return jsonify({'success': True, 'data': notification.to_dict()})


@dashboard_bp.route('/notifications/read-all', methods=['POST'])
@login_required_json
def mark_all_notifications():
    updated = notification_service.mark_all_read(current_user._get_current_object())
    return jsonify({'success': True, 'updated': updated})

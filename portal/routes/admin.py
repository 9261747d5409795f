"""
Admin Blueprint - Content and account management API

Categories and tasks CRUD with ordering, user package bookkeeping,
paid-user KPI and custom notifications. Every route requires the admin role.
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from portal.errors import ValidationFailed
from portal.forms import CategoryForm, CustomNotificationForm, PackageAssignmentForm, TaskForm
from portal.routes.guards import admin_required
from portal.services import (
    account_service,
    content_service,
    notification_service,
    stats_service,
)


admin_bp = Blueprint('admin', __name__)


def _json_body():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationFailed('Request body must be a JSON object')
    return payload


# -- categories ----------------------------------------------------------------


@admin_bp.route('/categories', methods=['GET'])
@admin_required
def list_categories():
    counts = content_service.category_task_counts()
    return jsonify({
        'success': True,
        'categories': [c.to_dict(task_count=counts.get(c.id, 0)) for c in content_service.list_categories()],
    })


@admin_bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    form = CategoryForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    category = content_service.create_category(_json_body())
    return jsonify({'success': True, 'category': category.to_dict()}), 201


@admin_bp.route('/categories/reorder', methods=['PATCH'])
@admin_required
def reorder_categories():
    content_service.reorder_categories(_json_body().get('categories'))
    return jsonify({'success': True, 'message': 'Categories reordered successfully'})


@admin_bp.route('/categories/<int:category_id>', methods=['GET'])
@admin_required
def get_category(category_id):
    category = content_service.get_category(category_id)
    return jsonify({'success': True, 'category': category.to_dict(task_count=category.tasks.count())})


@admin_bp.route('/categories/<int:category_id>', methods=['PATCH'])
@admin_required
def update_category(category_id):
    category = content_service.update_category(category_id, _json_body())
    return jsonify({'success': True, 'category': category.to_dict()})


@admin_bp.route('/categories/<int:category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    removed = content_service.delete_category(category_id)
    current_app.logger.info('Admin %s deleted category %s (%d tasks)', current_user.email, category_id, removed)
    return jsonify({'success': True, 'message': 'Category deleted successfully', 'deleted_tasks': removed})


@admin_bp.route('/categories/<int:category_id>/order', methods=['PATCH'])
@admin_required
def move_category(category_id):
    categories = content_service.move_category(category_id, _json_body().get('new_order'))
    return jsonify({'success': True, 'categories': [c.to_dict() for c in categories]})


# -- tasks -----------------------------------------------------------------------


@admin_bp.route('/tasks', methods=['GET'])
@admin_required
def list_tasks():
    tasks = content_service.list_tasks(category_id=request.args.get('category'))
    return jsonify({'success': True, 'tasks': [t.to_dict() for t in tasks]})


@admin_bp.route('/tasks', methods=['POST'])
@admin_required
def create_task():
    form = TaskForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    task = content_service.create_task(_json_body())
    return jsonify({'success': True, 'task': task.to_dict()}), 201


@admin_bp.route('/tasks/reorder', methods=['PATCH'])
@admin_required
def reorder_tasks():
    payload = _json_body()
    content_service.reorder_tasks(payload.get('tasks'), category_id=payload.get('category_id'))
    return jsonify({'success': True, 'message': 'Tasks reordered successfully'})


@admin_bp.route('/tasks/<int:task_id>', methods=['GET'])
@admin_required
def get_task(task_id):
    return jsonify({'success': True, 'task': content_service.get_task(task_id).to_dict()})


@admin_bp.route('/tasks/<int:task_id>', methods=['PATCH'])
@admin_required
def update_task(task_id):
    task = content_service.update_task(task_id, _json_body())
    return jsonify({'success': True, 'task': task.to_dict()})


@admin_bp.route('/tasks/<int:task_id>', methods=['DELETE'])
@admin_required
def delete_task(task_id):
    content_service.delete_task(task_id)
    return jsonify({'success': True, 'message': 'Task deleted successfully'})


@admin_bp.route('/tasks/<int:task_id>/order', methods=['PATCH'])
@admin_required
def move_task(task_id):
    tasks = content_service.move_task(task_id, _json_body().get('new_order'))
    return jsonify({'success': True, 'tasks': [t.to_dict() for t in tasks]})


# -- users -----------------------------------------------------------------------


@admin_bp.route('/users/search', methods=['GET'])
@admin_required
def search_users():
    page = account_service.search_users(
        request.args.get('email', ''),
        page=request.args.get('page', 1, type=int),
    )
    data = page.as_dict()
    data['success'] = True
    return jsonify(data)


@admin_bp.route('/users/<int:user_id>', methods=['PATCH'])
@admin_required
def assign_package(user_id):
    form = PackageAssignmentForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    user, paid_count = account_service.assign_package(
        user_id, form.package.data, acting_admin=current_user._get_current_object()
    )
    return jsonify({'success': True, 'user': user.to_dict(), 'paid_user_count': paid_count})


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    account_service.delete_user(user_id)
    return jsonify({'success': True, 'message': 'User deleted successfully'})


@admin_bp.route('/paid-users', methods=['GET'])
@admin_required
def paid_users():
    return jsonify({'success': True, 'paid_user_count': stats_service.paid_user_count()})


# -- notifications -------------------------------------------------------------


@admin_bp.route('/notifications', methods=['GET'])
@admin_required
def notification_recipients():
    users = notification_service.list_recipients()
    return jsonify({
        'success': True,
        'users': [
            {'id': u.id, 'name': u.full_name, 'email': u.email, 'package': u.package}
            for u in users
        ],
    })


@admin_bp.route('/notifications', methods=['POST'])
@admin_required
def send_notification():
    form = CustomNotificationForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    target_ids = _json_body().get('target_user_ids')
    if target_ids is not None and not isinstance(target_ids, list):
        raise ValidationFailed('target_user_ids must be a list of user IDs')

    sent = notification_service.send_custom_notification(
        title=form.title.data,
        message=form.message.data,
        type=form.type.data or 'info',
        priority=form.priority.data or 'medium',
        action_url=form.action_url.data,
        target_user_ids=target_ids,
    )
    return jsonify({'success': True, 'message': f'Notification sent to {sent} user(s)', 'recipients': sent}), 201

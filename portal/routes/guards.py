"""
Request guards shared by the API blueprints.

Identity is resolved by Flask-Login's request loader; these decorators add
the entitlement refresh and the role / paid-plan checks on top.
"""

from functools import wraps

from flask import current_app, g, jsonify
from flask_login import current_user

from portal.domain.entitlement import EntitlementRecord, has_active_paid_plan
from portal.services.entitlement_service import SqlAlchemyEntitlementStore, check_and_update_entitlement


def refresh_entitlement():
    """Run the expiry check for the current user once per request.

    The resulting record is cached on ``g.entitlement``; the ORM user is
    refreshed when a downgrade was written.
    """
    cached = getattr(g, 'entitlement', None)
    if cached is not None and cached.user_id == current_user.id:
        return cached

    record = EntitlementRecord.from_user(current_user)
    updated = check_and_update_entitlement(record, SqlAlchemyEntitlementStore())
    if updated is not record:
        current_app.logger.info('Entitlement refreshed for user %s', record.user_id)
    g.entitlement = updated
    return updated


def login_required_json(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        refresh_entitlement()
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require the admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if not current_user.is_admin:
            return jsonify({'success': False, 'error': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return decorated_function


def paid_plan_required(f):
    """Decorator to require an active paid plan (after the expiry refresh)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        record = refresh_entitlement()
        if not has_active_paid_plan(record):
            return jsonify({
                'success': False,
                'error': 'Active paid plan required',
                'requires_paid_plan': True,
            }), 403
        return f(*args, **kwargs)
    return decorated_function

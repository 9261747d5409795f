"""
Health check endpoints for monitoring application and dependencies.

- /health        lightweight probe, no database access
- /health/ready  database connectivity and schema presence
- /health/live   process liveness
"""

import os
from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from portal.extensions import db


health_bp = Blueprint('health', __name__)

REQUIRED_TABLES = {'users', 'categories', 'tasks', 'notifications'}


@health_bp.route('/health')
def health_check():
    """Returns 200 OK if the application is running."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': current_app.config.get('SERVICE_NAME', 'relocation-portal'),
    }), 200


@health_bp.route('/health/ready')
def readiness_check():
    """
    Readiness check including database connectivity.

    Returns 200 OK only if the database answers and the required tables
    exist; 503 otherwise.
    """
    checks = {
        'application': 'healthy',
        'database': 'unknown',
        'timestamp': datetime.utcnow().isoformat(),
    }
    status_code = 200

    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        checks['database'] = 'healthy'
    except SQLAlchemyError as exc:
        db.session.rollback()
        checks['database'] = 'unhealthy'
        checks['database_error'] = str(exc)
        status_code = 503
        current_app.logger.error('Database health check failed: %s', exc, exc_info=True)

    if checks['database'] == 'healthy':
        try:
            tables = set(inspect(db.engine).get_table_names())
            missing = REQUIRED_TABLES - tables
            if missing:
                checks['schema'] = 'incomplete'
                checks['missing_tables'] = sorted(missing)
                status_code = 503
            else:
                checks['schema'] = 'complete'
        except SQLAlchemyError as exc:
            checks['schema'] = 'unknown'
            checks['schema_error'] = str(exc)
            current_app.logger.error('Schema health check failed: %s', exc, exc_info=True)

    checks['overall'] = 'healthy' if status_code == 200 else 'unhealthy'
    return jsonify(checks), status_code


@health_bp.route('/health/live')
def liveness_check():
    return jsonify({
        'status': 'alive',
        'pid': os.getpid(),
        'timestamp': datetime.utcnow().isoformat(),
    }), 200

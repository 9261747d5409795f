"""
Flask Application Factory

This module implements the application factory pattern for creating
Flask application instances with different configurations.
"""

import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from portal.config import config
from portal.errors import PortalError
from portal.extensions import db, limiter, login_manager, mail, migrate


def create_app(config_name='default', test_config=None):
    """
    Application factory function

    Args:
        config_name (str): Configuration name ('development', 'production', 'testing')
        test_config (dict): Optional overrides applied after the config class

    Returns:
        Flask: Configured Flask application instance
    """

    config_name = (config_name or 'default').lower()

    app = Flask(__name__)

    # Instantiate the config object so @property values (like
    # ProductionConfig.SQLALCHEMY_DATABASE_URI) are evaluated.
    cfg = config.get(config_name) or config['default']
    cfg_obj = cfg() if isinstance(cfg, type) else cfg
    app.config.from_object(cfg_obj)
    if test_config:
        app.config.update(test_config)

    if config_name == 'production':
        if not app.config.get('SECRET_KEY'):
            app.logger.error('Production requires SECRET_KEY to be set via environment variable')
            raise RuntimeError('Missing SECRET_KEY in production')

        db_uri = app.config.get('SQLALCHEMY_DATABASE_URI')
        if not db_uri:
            app.logger.error('Production requires DATABASE_URL (SQLALCHEMY_DATABASE_URI) to be set')
            raise RuntimeError('Missing DATABASE_URL in production')
        if db_uri.strip().startswith('sqlite:'):
            app.logger.error('Production requires PostgreSQL (DATABASE_URL must not be sqlite)')
            raise RuntimeError('SQLite not allowed in production')
    elif not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = os.urandom(32).hex()
        app.logger.warning('SECRET_KEY was missing; generated an ephemeral key for this process.')

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    mail.init_app(app)
    limiter.init_app(app)

    register_auth_loaders(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_shell_context(app)
    register_cli_commands(app)

    @app.after_request
    def _apply_security_headers(response):
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        response.headers.setdefault('Permissions-Policy', 'geolocation=(), microphone=(), camera=()')
        response.headers.setdefault('Cache-Control', 'no-store')
        return response

    @app.teardown_appcontext
    def _cleanup_appcontext(exc):
        """Ensure scoped sessions are removed when the app context ends."""
        db.session.remove()

    return app


def register_auth_loaders(app):
    """Resolve identity from a bearer token or the auth cookie."""

    from portal.services.auth_service import load_user_from_token

    @login_manager.request_loader
    def _load_user_from_request(req):
        header = req.headers.get('Authorization', '')
        token = None
        if header.lower().startswith('bearer '):
            token = header[7:].strip()
        if not token:
            token = req.cookies.get(app.config['AUTH_COOKIE_NAME'])
        if not token:
            return None
        return load_user_from_token(token)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({'success': False, 'error': 'Authentication required'}), 401


def register_blueprints(app):
    """Register Flask blueprints"""

    from portal.routes.main import main_bp
    from portal.routes.auth import auth_bp
    from portal.routes.dashboard import dashboard_bp
    from portal.routes.admin import admin_bp
    from portal.routes.health import health_bp

    app.register_blueprint(main_bp, url_prefix='/api')
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(health_bp)  # No prefix - accessible at /health


def register_error_handlers(app):
    """Render every error as a JSON envelope."""

    @app.errorhandler(PortalError)
    def portal_error(error):
        if error.status_code >= 500:
            app.logger.error('Service error on %s: %s', request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(429)
    def rate_limited(error):
        app.logger.warning('Rate limit exceeded on %s: %s', request.path, error.description)
        return jsonify({
            'success': False,
            'error': 'Too many requests. Please try again later.',
        }), 429

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'success': False, 'error': error.description or error.name}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception('Unhandled exception (500): %s', error)
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_shell_context(app):
    """Register shell context for Flask CLI"""

    @app.shell_context_processor
    def make_shell_context():
        """Make database models available in Flask shell"""
        from portal.models import Category, Notification, SiteStats, Task, User, UserProgress
        return {
            'db': db,
            'User': User,
            'Category': Category,
            'Task': Task,
            'UserProgress': UserProgress,
            'Notification': Notification,
            'SiteStats': SiteStats,
        }


def register_cli_commands(app):
    """Register custom Flask CLI commands."""
    from portal.cli import (
        cleanup_notifications_command,
        create_admin_command,
        init_db_command,
        reset_progress_command,
        seed_content_command,
    )

    app.cli.add_command(create_admin_command)
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_content_command)
    app.cli.add_command(cleanup_notifications_command)
    app.cli.add_command(reset_progress_command)

"""
Flask Extensions Module

This module initializes all Flask extensions used in the application.
Extensions are initialized here and then attached to the app in the factory.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_mail import Mail
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


def _rate_limit_key() -> str:
	"""Client key for rate limiting.

	Forwarding headers count only when the peer is in TRUSTED_PROXIES.
	"""

	from flask import current_app, has_request_context, request

	from portal.utils.client_ip import resolve_client_ip

	if not has_request_context():
		return '0.0.0.0'

	resolved = resolve_client_ip(
		request.headers,
		request.remote_addr,
		trusted_proxies=current_app.config.get('TRUSTED_PROXIES'),
	)
	return resolved or get_remote_address() or '0.0.0.0'


# Initialize extensions
# These will be attached to the app in create_app()
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
mail = Mail()
limiter = Limiter(key_func=_rate_limit_key)

# Token-based API: no login view to redirect to.
login_manager.session_protection = None

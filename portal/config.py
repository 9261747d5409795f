"""
Configuration Module for the Relocation Portal

This module defines configuration classes for different environments:
- DevelopmentConfig: Local development with SQLite
- ProductionConfig: Production deployment with PostgreSQL
- TestingConfig: Automated testing configuration
"""

import os
import sys
from pathlib import Path
from datetime import timedelta


class Config:
    """Base configuration with common settings"""

    # Secret key for token signing and sessions.
    # DO NOT provide an insecure default here; the app factory enforces
    # presence in production and generates an ephemeral key elsewhere.
    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Database configuration
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Authentication tokens (bearer header or HTTP-only cookie)
    AUTH_TOKEN_MAX_AGE = timedelta(days=7)
    AUTH_COOKIE_NAME = 'auth_token'
    AUTH_COOKIE_SECURE = False

    # Subscription bookkeeping
    PAID_PACKAGE_DURATION = timedelta(days=365)

    # Checklist content limits
    MAX_CATEGORIES = 6
    MAX_TASKS_PER_CATEGORY = 12

    # Notification center
    NOTIFICATION_MERGE_WINDOW = timedelta(minutes=5)
    NOTIFICATION_RETENTION = timedelta(days=7)
    NOTIFICATION_PAGE_SIZE = 10
    NOTIFICATION_MAX_PAGE_SIZE = 50

    # Admin user search
    USERS_PER_PAGE = 10

    # Rate limiting (Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True
    SIGNIN_RATE_LIMIT = '5 per 15 minutes'
    CONTACT_RATE_LIMIT = '3 per hour'
    # Comma-separated IPs/CIDRs of reverse proxies whose X-Forwarded-For is believed.
    TRUSTED_PROXIES = os.environ.get('TRUSTED_PROXIES', '')

    # Email configuration
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'True').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@mnmconsultations.com')
    CONTACT_RECIPIENT = os.environ.get('CONTACT_RECIPIENT', 'mnmconsultations@gmail.com')

    # Public site URL; its host is allowed in admin notification action links.
    SITE_NAME = 'M&M Consultations'
    SITE_URL = os.environ.get('SITE_URL', 'https://www.mnmconsultations.com')
    ACTION_URL_ALLOWED_HOSTS = ('localhost', '127.0.0.1')

    # Admin configuration
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@mnmconsultations.com')


class DevelopmentConfig(Config):
    """Development environment configuration"""

    DEBUG = True
    TESTING = False

    # IMPORTANT (Windows): SQLAlchemy sqlite URLs must use forward slashes.
    _project_root = Path(__file__).resolve().parent.parent
    _default_db_path = (_project_root / 'relocation_portal.db').resolve()

    _env_db_url = os.environ.get('DATABASE_URL')
    if _env_db_url and _env_db_url.strip().startswith('sqlite:'):
        _env_db_url = _env_db_url.replace('\\', '/')

    SQLALCHEMY_DATABASE_URI = _env_db_url or f"sqlite:///{_default_db_path.as_posix()}"

    SQLALCHEMY_ECHO = os.environ.get('SQLALCHEMY_ECHO', '0') == '1'


class ProductionConfig(Config):
    """Production environment configuration"""

    DEBUG = False
    TESTING = False

    AUTH_COOKIE_SECURE = True

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """
        Production database URI, evaluated when the config is instantiated.

        - Render/Heroku provide DATABASE_URL with a postgres:// prefix which
          SQLAlchemy rejects.
        - Managed PostgreSQL requires SSL.
        """
        db_uri = os.environ.get('DATABASE_URL')

        if not db_uri:
            print('FATAL: DATABASE_URL not set in environment', file=sys.stderr)
            return None

        if db_uri.startswith('postgres://'):
            db_uri = 'postgresql://' + db_uri[len('postgres://'):]

        if db_uri.startswith('postgresql://') and 'sslmode=' not in db_uri:
            separator = '&' if '?' in db_uri else '?'
            db_uri = f"{db_uri}{separator}sslmode=require"

        return db_uri

    SQLALCHEMY_ECHO = False


class TestingConfig(Config):
    """Testing environment configuration"""

    TESTING = True
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}

    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    MAIL_SUPPRESS_SEND = True


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}

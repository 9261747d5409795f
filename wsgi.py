"""
WSGI Entry Point for the Relocation Portal

This module serves as the entry point for WSGI servers (like Gunicorn)
to run the Flask application in production environments.
"""

import os
import sys

from dotenv import load_dotenv

# Load .env ONLY for local development. In production, environment
# variables must be provided by the platform.
if os.environ.get('FLASK_ENV', '').lower() != 'production' and os.environ.get('FLASK_CONFIG', '').lower() != 'production':
    load_dotenv(override=False)

from portal import create_app

config_name = (os.getenv('FLASK_CONFIG') or os.getenv('FLASK_ENV') or 'development').lower()

if config_name == 'production':
    required_vars = {
        'SECRET_KEY': 'Required for signing auth tokens',
        'DATABASE_URL': 'Required for PostgreSQL connection',
    }
    missing_vars = [f'  {name}: {why}' for name, why in required_vars.items() if not os.getenv(name)]
    if missing_vars:
        print('Missing required environment variables:\n' + '\n'.join(missing_vars), file=sys.stderr)
        raise RuntimeError('Missing required environment variables in production')

app = create_app(config_name)

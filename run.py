"""Local development server.

Creates any missing tables (never drops) and seeds the starter checklist
before serving. Production serves `wsgi:app` from a WSGI server instead.
"""

import os

from wsgi import app
from portal.extensions import db
from portal.services.content_service import seed_default_content


if __name__ == '__main__':
    with app.app_context():
        db.create_all()
        seed_default_content()

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    app.run(host=host, port=port)

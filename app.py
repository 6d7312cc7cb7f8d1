#!/usr/bin/env python3
"""
MedHubb application entry point.

This module selects configuration based on environment variables, creates the
Flask application via `create_app`, and creates the database tables. When
executed directly, it runs the development server. In production, a WSGI
server should import `app` from this module.

Environment variables of interest:
- FLASK_ENV: if set to 'testing', enables in-memory DB and testing flags.
- DATABASE_URL: database URI (defaults to a local SQLite file).
- SECRET_KEY, JWT_SECRET_KEY, ADMIN_MASTER_PASSWORD, APP_URL, mail settings:
  consumed by `create_app`.
"""

import logging
import os

from medhubb import create_app
from medhubb.models import db

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger('medhubb')

# Create app instance
if os.getenv('FLASK_ENV') == 'testing':
    # Use test configuration for testing environment
    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': os.getenv('DATABASE_URL', 'sqlite:///:memory:'),
        'SECRET_KEY': os.getenv('SECRET_KEY', 'test-secret-key'),
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'test-jwt-secret-key'),
        'ADMIN_MASTER_PASSWORD': os.getenv('ADMIN_MASTER_PASSWORD', 'test-admin-password'),
        'APP_URL': os.getenv('APP_URL', 'http://localhost:3000'),
        'RATELIMIT_ENABLED': False,
        'MAIL_SERVER': os.getenv('MAIL_SERVER', 'localhost'),
        'MAIL_PORT': int(os.getenv('MAIL_PORT', 587)),
        'MAIL_USE_TLS': os.getenv('MAIL_USE_TLS', 'False').lower() == 'true',
        'MAIL_USE_SSL': os.getenv('MAIL_USE_SSL', 'False').lower() == 'true',
        'MAIL_DEFAULT_SENDER': os.getenv('MAIL_DEFAULT_SENDER', 'test@example.com'),
    }
    app = create_app(test_config)
    logger.info("Running in TESTING mode with in-memory database")
else:
    app = create_app()

with app.app_context():
    db.create_all()
    logger.info("Database tables ready (%s)", app.config.get('SQLALCHEMY_DATABASE_URI'))

if not app.config.get('ADMIN_MASTER_PASSWORD'):
    logger.warning("ADMIN_MASTER_PASSWORD is not set; admin endpoints will reject every request")

if __name__ == '__main__':
    app.run(debug=os.getenv('FLASK_ENV') != 'production', host='0.0.0.0', port=int(os.getenv('PORT', 5000)))

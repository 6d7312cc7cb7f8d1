"""
MedHubb Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, apply config (test or env-based), init extensions (DB, Mail).
  • Register blueprints: auth (/api/auth), admin (/api/admin),
    connections (/api/connections), patients (/api), offices (/api/offices),
    appointments (/api/appointments), prescriptions (/api/prescriptions), main (/).
  • Register global error handlers and request metrics.
"""

from flask import Flask
from .models import db
from .routes import (
    auth_bp, admin_bp, connections_bp, patients_bp, offices_bp, appointments_bp, prescriptions_bp, main_bp
)
from .config import Config
from .utils.email_service import mail


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__, template_folder='templates')

    # Configuration
    if test_config:
        # Use test configuration if provided
        app.config.update(test_config)
    else:
        # Use environment-based configuration
        app.config.from_object(Config())

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(connections_bp, url_prefix='/api/connections')
    app.register_blueprint(patients_bp, url_prefix='/api')
    app.register_blueprint(offices_bp, url_prefix='/api/offices')
    app.register_blueprint(appointments_bp, url_prefix='/api/appointments')
    app.register_blueprint(prescriptions_bp, url_prefix='/api/prescriptions')
    app.register_blueprint(main_bp)

    # Register error handlers and request metrics
    from .utils.error_handlers import register_error_handlers
    from .utils.prom_metrics import register_request_metrics
    register_error_handlers(app)
    register_request_metrics(app)

    return app

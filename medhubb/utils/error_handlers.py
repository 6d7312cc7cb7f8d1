"""
Error Handlers

JSON error bodies for framework-level errors. Route handlers produce their
own `{'error': ...}` responses; these cover unknown routes, wrong methods
and uncaught exceptions.
"""

from flask import jsonify


def json_error(message, status_code):
    """Build a JSON error response tuple"""
    return jsonify({'error': message}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(404)
    def not_found(error):
        return json_error('Risorsa non trovata', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return json_error('Metodo non consentito', 405)

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        app.logger.error(f"Unhandled error: {error}")
        return json_error('Errore interno del server', 500)

"""
Routes Package

This package contains all Flask route blueprints.
"""

from .auth import auth_bp
from .admin import admin_bp
from .connections import connections_bp
from .patients import patients_bp
from .offices import offices_bp
from .appointments import appointments_bp
from .prescriptions import prescriptions_bp
from .main import main_bp

__all__ = [
    'auth_bp',
    'admin_bp',
    'connections_bp',
    'patients_bp',
    'offices_bp',
    'appointments_bp',
    'prescriptions_bp',
    'main_bp'
]

"""
Model Utilities

This module contains utility functions for the models package.
"""

import secrets
import uuid


def generate_user_id():
    """Generate a UUID string used as primary key for users and profiles"""
    return str(uuid.uuid4())


def generate_invite_token():
    """Generate a URL-safe doctor invite token"""
    return secrets.token_urlsafe(24)


def generate_password_reset_token():
    """Generate a secure password reset token"""
    return secrets.token_urlsafe(32)


def isoformat(value):
    """Serialize an optional datetime/date for JSON responses"""
    return value.isoformat() if value else None


def clock(value):
    """Serialize an optional time as HH:MM"""
    return value.strftime('%H:%M') if value else None

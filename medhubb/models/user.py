"""
User Models

This module contains the User (auth identity) and PasswordResetToken models.
Doctor and patient profiles share the user's primary key.
"""

from datetime import datetime, timedelta
from .database import db
from .utils import generate_user_id, generate_password_reset_token, isoformat


class User(db.Model):
    """Authentication identity shared by doctors and patients"""
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=generate_user_id)
    email = db.Column(db.String(254), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_sign_in_at = db.Column(db.DateTime)

    # Relationships
    password_reset_tokens = db.relationship('PasswordResetToken', backref='user', lazy=True,
                                            cascade='all, delete-orphan')

    def __init__(self, email, password_hash, id=None):
        """Initialize a new user with email and bcrypt hash validation"""
        # Import validators here to avoid circular imports
        from ..utils.validators import validate_email, validate_password_hash

        email_validation = validate_email(email)
        if not email_validation.is_valid:
            raise ValueError(email_validation.error_message)

        hash_validation = validate_password_hash(password_hash)
        if not hash_validation.is_valid:
            raise ValueError(hash_validation.error_message)

        self.id = id or generate_user_id()
        self.email = email_validation.sanitized_value
        self.password_hash = hash_validation.sanitized_value

    def __repr__(self):
        return f'<User {self.email}>'

    def update_last_sign_in(self):
        """Update the last sign-in timestamp"""
        self.last_sign_in_at = datetime.utcnow()
        db.session.commit()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'created_at': isoformat(self.created_at),
            'last_sign_in_at': isoformat(self.last_sign_in_at),
        }


class PasswordResetToken(db.Model):
    """Password reset token for password recovery"""
    __tablename__ = 'password_reset_tokens'

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(255), unique=True, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False)

    def __init__(self, user_id, expires_in_seconds=3600):
        """Initialize a new password reset token"""
        self.user_id = user_id
        self.token = generate_password_reset_token()
        self.expires_at = datetime.utcnow() + timedelta(seconds=expires_in_seconds)

    def is_valid(self):
        """Check if token is valid and not expired"""
        return not self.used and datetime.utcnow() < self.expires_at

    def mark_used(self):
        """Mark token as used"""
        self.used = True
        db.session.commit()

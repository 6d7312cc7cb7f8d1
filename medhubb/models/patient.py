"""
Patient Model

This module contains the Patient profile, keyed by the owning user's id.
"""

from datetime import datetime
from .database import db
from .utils import isoformat


class Patient(db.Model):
    """Patient profile"""
    __tablename__ = 'patients'

    id = db.Column(db.String(36), db.ForeignKey('users.id'), primary_key=True)
    email = db.Column(db.String(254), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30))
    date_of_birth = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('patient_profile', uselist=False))

    def __repr__(self):
        return f'<Patient {self.first_name} {self.last_name}>'

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'date_of_birth': isoformat(self.date_of_birth),
            'created_at': isoformat(self.created_at),
        }

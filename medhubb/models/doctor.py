"""
Doctor Model

FLOW OVERVIEW
- One row per registered doctor, keyed by the owning user's id.
- Status lifecycle: pending (on registration) → approved | rejected (admin).
- Only approved doctors appear in the public directory and can be linked.
"""

from datetime import datetime
from .database import db
from .utils import isoformat

DOCTOR_STATUSES = ('pending', 'approved', 'rejected')


class Doctor(db.Model):
    """Doctor profile awaiting or holding admin approval"""
    __tablename__ = 'doctors'

    id = db.Column(db.String(36), db.ForeignKey('users.id'), primary_key=True)
    email = db.Column(db.String(254), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    order_number = db.Column(db.String(50), unique=True, nullable=False)
    specialization = db.Column(db.String(120))
    bio = db.Column(db.Text)
    status = db.Column(db.String(20), default='pending', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('doctor_profile', uselist=False))

    def __repr__(self):
        return f'<Doctor {self.first_name} {self.last_name} ({self.status})>'

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def is_approved(self):
        """Check if the doctor has been approved by an administrator"""
        return self.status == 'approved'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'order_number': self.order_number,
            'specialization': self.specialization,
            'bio': self.bio,
            'status': self.status,
            'created_at': isoformat(self.created_at),
        }

    def to_summary_dict(self):
        """Public fields shown on invites and connection responses"""
        return {
            'first_name': self.first_name,
            'last_name': self.last_name,
            'specialization': self.specialization,
        }

"""
Doctor Invite Model

An invite is a single-use token a doctor shares with a patient. Redeeming
a valid invite links the patient to the doctor without a pending request.
"""

from datetime import datetime, timedelta
from .database import db
from .utils import generate_invite_token, isoformat


class DoctorInvite(db.Model):
    """Doctor-generated connection invite"""
    __tablename__ = 'doctor_invites'

    id = db.Column(db.Integer, primary_key=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    invite_token = db.Column(db.String(64), unique=True, nullable=False)
    patient_email = db.Column(db.String(254))
    message = db.Column(db.Text)
    status = db.Column(db.String(20), default='active', nullable=False)  # active, used
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime)
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'))

    doctor = db.relationship('Doctor', backref=db.backref('invites', lazy=True))

    def __init__(self, doctor_id, patient_email=None, message=None, expires_in_days=7):
        """Initialize a new invite with a fresh token"""
        self.doctor_id = doctor_id
        self.patient_email = patient_email
        self.message = message
        self.invite_token = generate_invite_token()
        self.status = 'active'
        self.expires_at = datetime.utcnow() + timedelta(days=expires_in_days)

    def is_valid(self):
        """Check if invite is active and not expired"""
        return self.status == 'active' and datetime.utcnow() < self.expires_at

    def mark_used(self, patient_id):
        """Mark invite as redeemed by a patient"""
        self.status = 'used'
        self.used_at = datetime.utcnow()
        self.patient_id = patient_id

    @classmethod
    def find_valid(cls, token):
        """Return the active, unexpired invite for a token, if any."""
        return (cls.query.filter_by(invite_token=token, status='active')
                .filter(cls.expires_at >= datetime.utcnow())
                .first())

    def to_dict(self):
        return {
            'token': self.invite_token,
            'message': self.message,
            'patientEmail': self.patient_email,
            'createdAt': isoformat(self.created_at),
            'expiresAt': isoformat(self.expires_at),
        }

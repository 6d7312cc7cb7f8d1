"""
Patient-Doctor Link Model

FLOW OVERVIEW
- A row is created either by a patient request (status 'pending',
  initiated_by 'patient') or by an accepted doctor invite (status 'active',
  initiated_by 'doctor').
- Doctors answer pending requests: 'pending' → 'active' | 'rejected'.
- A patient holds at most one 'active' link at a time; the service layer
  enforces this before every transition into 'active'.
"""

from datetime import datetime
from .database import db

LINK_STATUSES = ('pending', 'active', 'rejected')


class PatientDoctorLink(db.Model):
    """Connection between a patient and a doctor"""
    __tablename__ = 'patient_doctor_links'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False)
    initiated_by = db.Column(db.String(20), default='patient', nullable=False)
    message = db.Column(db.Text)
    notes = db.Column(db.Text)
    requested_at = db.Column(db.DateTime, default=datetime.utcnow)
    responded_at = db.Column(db.DateTime)
    linked_at = db.Column(db.DateTime)

    patient = db.relationship('Patient', backref=db.backref('doctor_links', lazy=True))
    doctor = db.relationship('Doctor', backref=db.backref('patient_links', lazy=True))

    __table_args__ = (
        db.CheckConstraint(f"status IN {LINK_STATUSES}", name='ck_patient_doctor_links_status'),
    )

    def __repr__(self):
        return f'<PatientDoctorLink {self.patient_id} -> {self.doctor_id} ({self.status})>'

    def is_pending(self):
        return self.status == 'pending'

    @classmethod
    def active_for_patient(cls, patient_id):
        """Return the patient's active link, if any."""
        return cls.query.filter_by(patient_id=patient_id, status='active').first()

    @classmethod
    def pending_for_patient(cls, patient_id):
        """Return the patient's most recent pending request, if any."""
        return (cls.query.filter_by(patient_id=patient_id, status='pending')
                .order_by(cls.requested_at.desc()).first())

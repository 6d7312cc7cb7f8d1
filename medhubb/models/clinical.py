"""
Clinical Record Models

FLOW OVERVIEW
- Appointment: requested by a patient for a doctor's office; the doctor
  confirms, reschedules or rejects it; either side can cancel while it is
  still open (requested, confirmed, rescheduled).
- PrescriptionRequest + PrescriptionItem: a patient asks their doctor for up
  to ten medications; the doctor approves, rejects or asks for a visit.
- Prescription: medication issued to a patient. Approving a request issues
  one Prescription per requested item.
"""

from datetime import datetime
from .database import db
from .utils import clock, isoformat

VISIT_TYPES = ('first_visit', 'follow_up', 'urgent', 'routine')

# Minutes booked for each visit type when offering slots
VISIT_DURATIONS = {
    'first_visit': 60,
    'follow_up': 30,
    'urgent': 20,
    'routine': 30,
}

APPOINTMENT_STATUSES = ('requested', 'confirmed', 'rescheduled', 'rejected',
                        'cancelled_by_patient', 'cancelled_by_doctor', 'completed')
OPEN_APPOINTMENT_STATUSES = ('requested', 'confirmed', 'rescheduled')

URGENCY_LEVELS = ('normal', 'urgent')
PRESCRIPTION_RESPONSES = ('approved', 'rejected', 'requires_appointment')


def person_summary(profile):
    if not profile:
        return None
    return {
        'id': profile.id,
        'first_name': profile.first_name,
        'last_name': profile.last_name,
        'email': profile.email,
    }


class Appointment(db.Model):
    """Visit between a patient and a doctor at one of the doctor's offices"""
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    requested_office_id = db.Column(db.Integer, db.ForeignKey('doctor_offices.id'))
    confirmed_office_id = db.Column(db.Integer, db.ForeignKey('doctor_offices.id'))
    appointment_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    status = db.Column(db.String(30), default='requested', nullable=False)
    visit_type = db.Column(db.String(20), default='follow_up', nullable=False)
    patient_notes = db.Column(db.Text)
    doctor_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = db.relationship('Patient')
    doctor = db.relationship('Doctor')
    requested_office = db.relationship('DoctorOffice', foreign_keys=[requested_office_id])
    confirmed_office = db.relationship('DoctorOffice', foreign_keys=[confirmed_office_id])

    __table_args__ = (
        db.CheckConstraint(f"status IN {APPOINTMENT_STATUSES}", name='ck_appointments_status'),
        db.CheckConstraint(f"visit_type IN {VISIT_TYPES}", name='ck_appointments_visit_type'),
    )

    def __repr__(self):
        return f'<Appointment {self.appointment_date} {self.start_time} ({self.status})>'

    def is_open(self):
        return self.status in OPEN_APPOINTMENT_STATUSES

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'doctor_id': self.doctor_id,
            'requested_office_id': self.requested_office_id,
            'confirmed_office_id': self.confirmed_office_id,
            'appointment_date': isoformat(self.appointment_date),
            'start_time': clock(self.start_time),
            'end_time': clock(self.end_time),
            'status': self.status,
            'visit_type': self.visit_type,
            'patient_notes': self.patient_notes,
            'doctor_notes': self.doctor_notes,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def to_detail_dict(self):
        """Appointment with both parties and offices, for the dashboard lists"""
        return dict(
            self.to_dict(),
            patients=person_summary(self.patient),
            doctors=person_summary(self.doctor),
            requested_office=self.requested_office.to_summary_dict() if self.requested_office else None,
            confirmed_office=self.confirmed_office.to_summary_dict() if self.confirmed_office else None,
        )


class PrescriptionRequest(db.Model):
    """Patient request for one or more medications"""
    __tablename__ = 'prescription_requests'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    status = db.Column(db.String(30), default='pending', nullable=False)
    urgency = db.Column(db.String(20), default='normal', nullable=False)
    patient_notes = db.Column(db.Text)
    doctor_response = db.Column(db.Text)
    doctor_notes = db.Column(db.Text)
    related_appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    responded_at = db.Column(db.DateTime)

    patient = db.relationship('Patient')
    doctor = db.relationship('Doctor')
    items = db.relationship('PrescriptionItem', backref='request', lazy=True,
                            order_by='PrescriptionItem.id', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<PrescriptionRequest {self.id} ({self.status})>'

    def is_pending(self):
        return self.status == 'pending'

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'doctor_id': self.doctor_id,
            'status': self.status,
            'urgency': self.urgency,
            'patient_notes': self.patient_notes,
            'doctor_response': self.doctor_response,
            'doctor_notes': self.doctor_notes,
            'related_appointment_id': self.related_appointment_id,
            'created_at': isoformat(self.created_at),
            'responded_at': isoformat(self.responded_at),
            'patients': person_summary(self.patient),
            'doctors': person_summary(self.doctor),
            'prescription_items': [item.to_dict() for item in self.items],
        }


class PrescriptionItem(db.Model):
    """One medication inside a prescription request"""
    __tablename__ = 'prescription_items'

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey('prescription_requests.id'), nullable=False, index=True)
    medication_name = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100))
    quantity = db.Column(db.String(100))
    patient_reason = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'medication_name': self.medication_name,
            'dosage': self.dosage,
            'quantity': self.quantity,
            'patient_reason': self.patient_reason,
        }


class Prescription(db.Model):
    """Medication prescribed by a doctor to a patient"""
    __tablename__ = 'prescriptions'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(36), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    request_id = db.Column(db.Integer, db.ForeignKey('prescription_requests.id'))
    medication = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100))
    instructions = db.Column(db.Text)
    status = db.Column(db.String(20), default='active')  # active, completed, cancelled
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'doctor_id': self.doctor_id,
            'request_id': self.request_id,
            'medication': self.medication,
            'dosage': self.dosage,
            'instructions': self.instructions,
            'status': self.status,
            'created_at': isoformat(self.created_at),
        }

"""
Doctor Office Models

FLOW OVERVIEW
- DoctorOffice: a practice location owned by one doctor. Offices are never
  deleted; deactivation sets is_active = False.
- OfficeSchedule: weekly opening hours of an office, one row per
  (office, day_of_week). day_of_week runs 0 (Sunday) to 6 (Saturday);
  slot_duration is the step in minutes between bookable slots.
"""

from datetime import datetime
from .database import db
from .utils import clock, isoformat


class DoctorOffice(db.Model):
    """Practice location of a doctor"""
    __tablename__ = 'doctor_offices'

    id = db.Column(db.Integer, primary_key=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(120), nullable=False)
    postal_code = db.Column(db.String(20))
    phone = db.Column(db.String(30))
    email = db.Column(db.String(254))
    notes = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    doctor = db.relationship('Doctor', backref=db.backref('offices', lazy=True))
    schedules = db.relationship('OfficeSchedule', backref='office', lazy=True,
                                order_by='OfficeSchedule.day_of_week')

    def __repr__(self):
        return f'<DoctorOffice {self.name} ({self.city})>'

    @classmethod
    def active_for_doctor(cls, office_id, doctor_id):
        """Return the doctor's office if it exists and is active."""
        if office_id is None:
            return None
        return cls.query.filter_by(id=office_id, doctor_id=doctor_id, is_active=True).first()

    def to_summary_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'city': self.city,
        }

    def to_dict(self):
        return dict(
            self.to_summary_dict(),
            postal_code=self.postal_code,
            phone=self.phone,
            email=self.email,
            notes=self.notes,
            is_active=self.is_active,
            created_at=isoformat(self.created_at),
            updated_at=isoformat(self.updated_at),
            doctor_office_schedules=[s.to_dict() for s in self.schedules],
        )


class OfficeSchedule(db.Model):
    """Weekly opening hours of an office on one day"""
    __tablename__ = 'doctor_office_schedules'

    id = db.Column(db.Integer, primary_key=True)
    office_id = db.Column(db.Integer, db.ForeignKey('doctor_offices.id'), nullable=False, index=True)
    doctor_id = db.Column(db.String(36), db.ForeignKey('doctors.id'), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    slot_duration = db.Column(db.Integer, default=30, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('office_id', 'day_of_week', name='uq_office_schedule_day'),
        db.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_office_schedule_day'),
    )

    def __repr__(self):
        return f'<OfficeSchedule office={self.office_id} day={self.day_of_week}>'

    def to_dict(self):
        return {
            'id': self.id,
            'office_id': self.office_id,
            'day_of_week': self.day_of_week,
            'start_time': clock(self.start_time),
            'end_time': clock(self.end_time),
            'slot_duration': self.slot_duration,
            'is_active': self.is_active,
        }

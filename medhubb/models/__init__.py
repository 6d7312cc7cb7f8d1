"""
Database Models Package

FLOW OVERVIEW
- Centralizes SQLAlchemy DB instance and model imports for convenient usage.
- Exposes: db, User, PasswordResetToken, Doctor, Patient, PatientDoctorLink,
  DoctorInvite, DoctorOffice, OfficeSchedule, Appointment, PrescriptionRequest,
  PrescriptionItem, Prescription, AuditLog, RateLimitEvent.
"""

from .database import db
from .user import User, PasswordResetToken
from .doctor import Doctor
from .patient import Patient
from .connection import PatientDoctorLink
from .invite import DoctorInvite
from .office import DoctorOffice, OfficeSchedule
from .clinical import Appointment, PrescriptionRequest, PrescriptionItem, Prescription
from .audit import AuditLog, RateLimitEvent

__all__ = [
    'db',
    'User',
    'PasswordResetToken',
    'Doctor',
    'Patient',
    'PatientDoctorLink',
    'DoctorInvite',
    'DoctorOffice',
    'OfficeSchedule',
    'Appointment',
    'PrescriptionRequest',
    'PrescriptionItem',
    'Prescription',
    'AuditLog',
    'RateLimitEvent'
]

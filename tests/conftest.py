"""
Test configuration and shared fixtures for MedHubb tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files
- Factory fixtures for doctors, patients, links, invites, offices and appointments
"""

import pytest
from datetime import date, datetime, time, timedelta
from medhubb import create_app
from medhubb.models import (
    db, User, Doctor, Patient, PatientDoctorLink, DoctorInvite, DoctorOffice, OfficeSchedule, Appointment
)
from medhubb.utils.auth_utils import hash_password, create_access_token


ADMIN_PASSWORD = 'test-admin-password'
DEFAULT_PASSWORD = 'Segreta123'

# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SECRET_KEY': 'test-secret-key',
    'JWT_SECRET_KEY': 'test-jwt-secret-key',
    'JWT_ACCESS_TOKEN_EXPIRES': 3600,
    'ADMIN_MASTER_PASSWORD': ADMIN_PASSWORD,
    'APP_URL': 'http://localhost:3000',
    'INVITE_EXPIRY_DAYS': 7,
    'PASSWORD_RESET_TOKEN_EXPIRES': 3600,
    'BCRYPT_LOG_ROUNDS': 4,
    'RATELIMIT_ENABLED': False,
    'MAIL_SERVER': 'localhost',
    'MAIL_PORT': 587,
    'MAIL_USE_TLS': False,
    'MAIL_USE_SSL': False,
    'MAIL_DEFAULT_SENDER': 'MedHubb Team <noreply@medhubb.app>',
}


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)
    return app


@pytest.fixture
def app_factory():
    """Build an app with selected TEST_CONFIG overrides."""
    def _app_factory(**overrides):
        return create_app(dict(TEST_CONFIG, **overrides))
    return _app_factory


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


@pytest.fixture
def make_user(db_session):
    """Factory for identity rows with a known password."""
    def _make_user(email, password=DEFAULT_PASSWORD):
        user = User(email=email, password_hash=hash_password(password))
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_doctor(db_session, make_user):
    """Factory for doctor profiles (approved by default)."""
    counter = {'n': 0}

    def _make_doctor(email=None, status='approved', first_name='Mario', last_name='Rossi',
                     specialization='Medicina generale', bio=None):
        counter['n'] += 1
        email = email or f"doctor{counter['n']}@example.com"
        user = make_user(email)
        doctor = Doctor(
            id=user.id,
            email=user.email,
            first_name=first_name,
            last_name=last_name,
            order_number=f"ORD-{counter['n']:04d}",
            specialization=specialization,
            bio=bio,
            status=status,
        )
        db_session.add(doctor)
        db_session.commit()
        return doctor
    return _make_doctor


@pytest.fixture
def make_patient(db_session, make_user):
    """Factory for patient profiles."""
    counter = {'n': 0}

    def _make_patient(email=None, first_name='Giulia', last_name='Bianchi'):
        counter['n'] += 1
        email = email or f"patient{counter['n']}@example.com"
        user = make_user(email)
        patient = Patient(id=user.id, email=user.email, first_name=first_name, last_name=last_name)
        db_session.add(patient)
        db_session.commit()
        return patient
    return _make_patient


@pytest.fixture
def make_link(db_session):
    """Factory for patient-doctor links."""
    def _make_link(patient, doctor, status='active', initiated_by='patient', message=None):
        now = datetime.utcnow()
        link = PatientDoctorLink(
            patient_id=patient.id,
            doctor_id=doctor.id,
            status=status,
            initiated_by=initiated_by,
            message=message,
            requested_at=now,
            linked_at=now if status == 'active' else None,
        )
        db_session.add(link)
        db_session.commit()
        return link
    return _make_link


@pytest.fixture
def make_invite(db_session):
    """Factory for doctor invites."""
    def _make_invite(doctor, patient_email=None, message=None, expires_in_days=7):
        invite = DoctorInvite(doctor.id, patient_email=patient_email, message=message,
                              expires_in_days=expires_in_days)
        db_session.add(invite)
        db_session.commit()
        return invite
    return _make_invite


@pytest.fixture
def approved_doctor(make_doctor):
    return make_doctor(email='dottore@example.com', first_name='Luca', last_name='Verdi',
                       specialization='Cardiologia', bio='Cardiologo a Milano')


@pytest.fixture
def pending_doctor(make_doctor):
    return make_doctor(email='attesa@example.com', status='pending',
                       first_name='Anna', last_name='Neri')


@pytest.fixture
def patient(make_patient):
    return make_patient(email='paziente@example.com')


@pytest.fixture
def auth_headers(db_session):
    """Build Authorization headers carrying a user access token."""
    def _auth_headers(user_or_profile):
        user = db_session.get(User, user_or_profile.id)
        return {'Authorization': f'Bearer {create_access_token(user)}'}
    return _auth_headers


@pytest.fixture
def admin_headers():
    return {'Authorization': f'Bearer {ADMIN_PASSWORD}'}


def next_weekday(day_of_week, weeks_ahead=1):
    """A future date falling on day_of_week (0 = Sunday)"""
    today = date.today()
    days = (day_of_week - today.isoweekday() % 7) % 7
    return today + timedelta(days=days + 7 * weeks_ahead)


@pytest.fixture
def make_office(db_session):
    """Factory for doctor offices."""
    def _make_office(doctor, name='Studio Centro', city='Milano', is_active=True):
        office = DoctorOffice(doctor_id=doctor.id, name=name, address='Via Roma 1',
                              city=city, is_active=is_active)
        db_session.add(office)
        db_session.commit()
        return office
    return _make_office


@pytest.fixture
def make_schedule(db_session):
    """Factory for weekly office hours (09:00-13:00 by default)."""
    def _make_schedule(office, day_of_week, start=time(9, 0), end=time(13, 0), slot_duration=30):
        schedule = OfficeSchedule(office_id=office.id, doctor_id=office.doctor_id,
                                  day_of_week=day_of_week, start_time=start, end_time=end,
                                  slot_duration=slot_duration)
        db_session.add(schedule)
        db_session.commit()
        return schedule
    return _make_schedule


@pytest.fixture
def make_appointment(db_session):
    """Factory for appointments."""
    def _make_appointment(patient, doctor, office, day, start=time(9, 0), end=time(9, 30),
                          status='requested', visit_type='follow_up'):
        appointment = Appointment(patient_id=patient.id, doctor_id=doctor.id,
                                  requested_office_id=office.id, appointment_date=day,
                                  start_time=start, end_time=end, status=status,
                                  visit_type=visit_type)
        db_session.add(appointment)
        db_session.commit()
        return appointment
    return _make_appointment


@pytest.fixture
def linked_patient(patient, approved_doctor, make_link):
    """Patient with an active link to approved_doctor."""
    make_link(patient, approved_doctor)
    return patient


@pytest.fixture
def office(approved_doctor, make_office):
    return make_office(approved_doctor)


@pytest.fixture
def booking_day(office, make_schedule):
    """Next Monday, with office hours 09:00-13:00."""
    make_schedule(office, 1)
    return next_weekday(1)

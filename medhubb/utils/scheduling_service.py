"""
Scheduling Service

FLOW OVERVIEW
- save_office(doctor_id, fields, office_id=None)
  • Approved doctors create offices or update their own.
- deactivate_office(doctor_id, office_id)
  • Soft delete: the office stops accepting appointments.
- set_schedule(...) / remove_schedule(...)
  • One schedule per (office, weekday); removing only deactivates it.
- check_availability(doctor_id, office_id, day, start, end)
  • Inside the office hours for that weekday and free of open appointments.
- available_slots(doctor_id, office_id, day, visit_type)
  • Bookable slots stepping by slot_duration, sized by visit type; slots today
    must start at least an hour from now.
- request_appointment(...) / confirm_appointment(...) / cancel_appointment(...)
  • Patient requests at an office of their linked doctor; the doctor confirms,
    reschedules or rejects; either side cancels an open appointment.

Weekdays follow 0 = Sunday ... 6 = Saturday.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from ..models import (
    db, Appointment, AuditLog, Doctor, DoctorOffice, OfficeSchedule, Patient, PatientDoctorLink
)
from ..models.clinical import OPEN_APPOINTMENT_STATUSES, VISIT_DURATIONS
from .connection_service import ServiceResult, parse_record_id
from .validators import sanitize_input, validate_email

END_BEFORE_START = "L'orario di fine deve essere successivo all'orario di inizio"
OFFICE_NOT_FOUND = "Ambulatorio non trovato o non attivo"
OUTSIDE_OFFICE_HOURS = "Il medico non riceve in questo ambulatorio nell'orario richiesto"
SLOT_TAKEN = "Orario già occupato da un altro appuntamento"

OFFICE_FIELDS = ('name', 'address', 'city', 'postal_code', 'phone', 'email', 'notes')


def weekday(day):
    """Weekday of a date with Sunday as 0"""
    return day.isoweekday() % 7


def to_minutes(value):
    return value.hour * 60 + value.minute


def format_minutes(minutes):
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


class SchedulingService:
    """Doctor offices, weekly schedules and appointments."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def save_office(self, doctor_id, fields, office_id=None) -> ServiceResult:
        doctor = db.session.get(Doctor, doctor_id)
        if not doctor or not doctor.is_approved():
            return ServiceResult.fail("Solo i medici approvati possono gestire gli ambulatori")

        email = fields.get('email')
        if email:
            email_validation = validate_email(email)
            if not email_validation.is_valid:
                return ServiceResult.fail(email_validation.error_message)
            fields = dict(fields, email=email_validation.sanitized_value)

        if office_id is None:
            office = DoctorOffice(doctor_id=doctor_id)
            db.session.add(office)
            message = "Ambulatorio creato con successo"
        else:
            record_id = parse_record_id(office_id)
            office = (DoctorOffice.query.filter_by(id=record_id, doctor_id=doctor_id).first()
                      if record_id is not None else None)
            if not office:
                return ServiceResult.fail("Ambulatorio non trovato")
            message = "Ambulatorio aggiornato con successo"

        for field in OFFICE_FIELDS:
            setattr(office, field, sanitize_input(fields.get(field), 255 if field != 'notes' else 2000) or None)
        db.session.commit()

        self.logger.info(f"Office {office.id} saved by doctor {doctor_id}")
        return ServiceResult.ok(message, office=office)

    def deactivate_office(self, doctor_id, office_id) -> ServiceResult:
        office = DoctorOffice.active_for_doctor(parse_record_id(office_id), doctor_id)
        if not office:
            return ServiceResult.fail(OFFICE_NOT_FOUND)

        office.is_active = False
        db.session.commit()
        self.logger.info(f"Office {office.id} deactivated by doctor {doctor_id}")
        return ServiceResult.ok("Ambulatorio disattivato con successo", office=office)

    def set_schedule(self, doctor_id, office_id, day_of_week, start_time, end_time,
                     slot_duration=30) -> ServiceResult:
        office = DoctorOffice.active_for_doctor(parse_record_id(office_id), doctor_id)
        if not office:
            return ServiceResult.fail(OFFICE_NOT_FOUND)

        if start_time >= end_time:
            return ServiceResult.fail(END_BEFORE_START)

        schedule = OfficeSchedule.query.filter_by(office_id=office.id, day_of_week=day_of_week).first()
        if not schedule:
            schedule = OfficeSchedule(office_id=office.id, doctor_id=doctor_id, day_of_week=day_of_week)
            db.session.add(schedule)

        schedule.start_time = start_time
        schedule.end_time = end_time
        schedule.slot_duration = slot_duration
        schedule.is_active = True
        db.session.commit()

        return ServiceResult.ok("Orario impostato con successo", schedule=schedule)

    def remove_schedule(self, doctor_id, office_id, day_of_week) -> ServiceResult:
        record_id = parse_record_id(office_id)
        schedule = (OfficeSchedule.query.filter_by(
            office_id=record_id, doctor_id=doctor_id, day_of_week=day_of_week, is_active=True
        ).first() if record_id is not None else None)
        if not schedule:
            return ServiceResult.fail("Orario non trovato")

        schedule.is_active = False
        db.session.commit()
        return ServiceResult.ok("Orario rimosso con successo")

    def schedule_on(self, doctor_id, office_id, day):
        """Active schedule of an active office on the weekday of `day`"""
        if office_id is None:
            return None
        return (OfficeSchedule.query.join(OfficeSchedule.office)
                .filter(OfficeSchedule.doctor_id == doctor_id,
                        OfficeSchedule.office_id == office_id,
                        OfficeSchedule.day_of_week == weekday(day),
                        OfficeSchedule.is_active.is_(True),
                        DoctorOffice.is_active.is_(True))
                .first())

    def booked_appointments(self, doctor_id, day, exclude_appointment_id=None):
        query = Appointment.query.filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == day,
            Appointment.status.in_(OPEN_APPOINTMENT_STATUSES),
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.all()

    def check_availability(self, doctor_id, office_id, day, start_time, end_time,
                           exclude_appointment_id=None) -> Dict[str, Any]:
        if start_time >= end_time:
            return {'available': False, 'reason': END_BEFORE_START}

        schedule = self.schedule_on(doctor_id, office_id, day)
        if not schedule or start_time < schedule.start_time or end_time > schedule.end_time:
            return {'available': False, 'reason': OUTSIDE_OFFICE_HOURS}

        for appointment in self.booked_appointments(doctor_id, day, exclude_appointment_id):
            if start_time < appointment.end_time and end_time > appointment.start_time:
                return {'available': False, 'reason': SLOT_TAKEN}

        return {'available': True, 'reason': None}

    def available_slots(self, doctor_id, office_id, day, visit_type='follow_up', now=None):
        """
        Free slots for one day at one office.

        Returns:
            Tuple of (schedule, slots); schedule is None when the office is
            closed that day.
        """
        schedule = self.schedule_on(doctor_id, office_id, day)
        if not schedule:
            return None, []

        duration = VISIT_DURATIONS.get(visit_type, 30)
        booked = [(to_minutes(a.start_time), to_minutes(a.end_time))
                  for a in self.booked_appointments(doctor_id, day)]

        now = now or datetime.now()
        earliest = to_minutes(now.time()) + 60 if day == now.date() else None

        slots = []
        current = to_minutes(schedule.start_time)
        closing = to_minutes(schedule.end_time)
        while current + duration <= closing:
            slot_end = current + duration
            taken = any(current < end and slot_end > start for start, end in booked)
            if not taken and (earliest is None or current > earliest):
                slots.append({
                    'startTime': format_minutes(current),
                    'endTime': format_minutes(slot_end),
                    'duration': duration,
                    'available': True,
                })
            current += schedule.slot_duration

        return schedule, slots

    def request_appointment(self, patient_id, doctor_id, office_id, day, start_time, end_time,
                            visit_type='follow_up', patient_notes=None) -> ServiceResult:
        if not db.session.get(Patient, patient_id):
            return ServiceResult.fail("Solo i pazienti possono richiedere appuntamenti")

        link = PatientDoctorLink.active_for_patient(patient_id)
        if not link or link.doctor_id != doctor_id:
            return ServiceResult.fail("Devi essere collegato a questo medico per prenotare un appuntamento")

        office = DoctorOffice.active_for_doctor(parse_record_id(office_id), doctor_id)
        if not office:
            return ServiceResult.fail(OFFICE_NOT_FOUND)

        availability = self.check_availability(doctor_id, office.id, day, start_time, end_time)
        if not availability['available']:
            return ServiceResult.fail(availability['reason'])

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            requested_office_id=office.id,
            appointment_date=day,
            start_time=start_time,
            end_time=end_time,
            status='requested',
            visit_type=visit_type,
            patient_notes=patient_notes,
        )
        db.session.add(appointment)
        db.session.commit()

        self.logger.info(f"Appointment {appointment.id} requested: patient {patient_id} -> doctor {doctor_id}")
        return ServiceResult.ok("Richiesta di appuntamento inviata con successo", appointment=appointment)

    def confirm_appointment(self, doctor_id, appointment_id, office_id, action, day=None,
                            start_time=None, end_time=None, doctor_notes=None) -> ServiceResult:
        record_id = parse_record_id(appointment_id)
        appointment = db.session.get(Appointment, record_id) if record_id is not None else None
        if not appointment:
            return ServiceResult.fail("Appuntamento non trovato")

        if appointment.doctor_id != doctor_id:
            return ServiceResult.fail("Non autorizzato a modificare questo appuntamento")

        if not appointment.is_open():
            return ServiceResult.fail("Appuntamento non modificabile in questo stato")

        if action == 'reject':
            appointment.status = 'rejected'
            message = "Appuntamento rifiutato"
        else:
            office = DoctorOffice.active_for_doctor(parse_record_id(office_id), doctor_id)
            if not office:
                return ServiceResult.fail(OFFICE_NOT_FOUND)

            if action == 'reschedule':
                availability = self.check_availability(doctor_id, office.id, day, start_time, end_time,
                                                       exclude_appointment_id=appointment.id)
                if not availability['available']:
                    return ServiceResult.fail(availability['reason'])
                appointment.appointment_date = day
                appointment.start_time = start_time
                appointment.end_time = end_time
                appointment.status = 'rescheduled'
                message = "Appuntamento riprogrammato con successo"
            else:
                if appointment.status == 'confirmed':
                    return ServiceResult.fail("Appuntamento già confermato")
                appointment.status = 'confirmed'
                message = "Appuntamento confermato con successo"
            appointment.confirmed_office_id = office.id

        if doctor_notes:
            appointment.doctor_notes = doctor_notes
        AuditLog.record(f'appointment_{action}', user_id=doctor_id,
                        details={'appointment_id': appointment.id, 'patient_id': appointment.patient_id})
        db.session.commit()

        self.logger.info(f"Appointment {appointment.id} {action} by doctor {doctor_id}")
        return ServiceResult.ok(message, appointment=appointment)

    def cancel_appointment(self, appointment, by_doctor, reason=None) -> ServiceResult:
        if not appointment.is_open():
            return ServiceResult.fail("Appuntamento non può essere cancellato in questo stato")

        reason = reason or 'Appuntamento cancellato'
        if by_doctor:
            appointment.status = 'cancelled_by_doctor'
            appointment.doctor_notes = reason
        else:
            appointment.status = 'cancelled_by_patient'
            appointment.patient_notes = reason
        db.session.commit()

        self.logger.info(f"Appointment {appointment.id} {appointment.status}")
        return ServiceResult.ok("Appuntamento cancellato con successo", appointment=appointment)


# Global instance
scheduling_service = SchedulingService()

"""
Connection Service

FLOW OVERVIEW
- register_patient(...)
  • Insert patient profile, optionally file a pending request to an approved doctor,
    record an audit entry. Does not commit: the caller commits together with the
    identity row so both roll back as one.
- create_patient_request(patient_id, doctor_id, message)
  • Approved doctor, existing patient, no active link, no pending request → pending link.
- respond_to_request(request_id, doctor_id, response, note)
  • Owning doctor answers a pending request: 'approved' → active link, 'rejected'.
- create_doctor_invite(doctor_id, patient_email, message)
  • Approved doctor issues a single-use invite token.
- accept_invite(token, patient_id)
  • Valid invite + patient without an active link → active link initiated by the doctor.
- connection_status(patient_id)
  • 'connected' | 'pending' | 'unconnected' summary for the patient dashboard.

Business-rule failures are returned as ServiceResult(success=False, error=...) and
mapped to HTTP 400 by the routes; unexpected exceptions propagate.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..models import db, Doctor, Patient, PatientDoctorLink, DoctorInvite, AuditLog
from .validators import validate_email

ALREADY_LINKED_TO_DOCTOR = "Sei già collegato a questo medico"
ALREADY_HAS_DOCTOR = ("Hai già un medico collegato. Un paziente può essere collegato "
                      "a un solo medico alla volta.")


def parse_record_id(value) -> Optional[int]:
    """Integer primary key from a JSON value; None for bools, floats and non-digit strings"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class ServiceResult:
    """Result of a connection service operation."""

    def __init__(self, success: bool, error: Optional[str] = None,
                 message: Optional[str] = None, data: Optional[Dict] = None):
        self.success = success
        self.error = error
        self.message = message
        self.data = data or {}

    @classmethod
    def ok(cls, message=None, **data):
        return cls(True, message=message, data=data)

    @classmethod
    def fail(cls, error):
        return cls(False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        if self.success:
            return {'success': True, 'message': self.message}
        return {'success': False, 'error': self.error}


class ConnectionService:
    """Patient registration, connection requests and doctor invites."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def register_patient(self, user_id, email, first_name, last_name, doctor_id=None,
                         ip_address=None, user_agent=None) -> ServiceResult:
        if Patient.query.filter_by(email=email).first():
            return ServiceResult.fail("Email già registrata come paziente")

        doctor = None
        if doctor_id:
            doctor = db.session.get(Doctor, doctor_id)
            if not doctor or not doctor.is_approved():
                return ServiceResult.fail("Il medico selezionato non è disponibile")

        patient = Patient(id=user_id, email=email, first_name=first_name, last_name=last_name)
        db.session.add(patient)

        if doctor:
            db.session.add(PatientDoctorLink(
                patient_id=user_id,
                doctor_id=doctor.id,
                status='pending',
                initiated_by='patient',
                message='Richiesta inviata in fase di registrazione',
            ))

        AuditLog.record('patient_registered', user_id=user_id, ip_address=ip_address,
                        user_agent=user_agent, details={'doctor_id': doctor_id})
        db.session.flush()

        if doctor:
            message = "Registrazione completata. Richiesta di collegamento inviata al medico."
        else:
            message = "Registrazione completata con successo."
        return ServiceResult.ok(message, patient=patient)

    def create_patient_request(self, patient_id, doctor_id, message=None) -> ServiceResult:
        patient = db.session.get(Patient, patient_id)
        if not patient:
            return ServiceResult.fail("Paziente non trovato")

        doctor = db.session.get(Doctor, doctor_id)
        if not doctor or not doctor.is_approved():
            return ServiceResult.fail("Medico non trovato o non disponibile")

        active = PatientDoctorLink.active_for_patient(patient_id)
        if active:
            if active.doctor_id == doctor_id:
                return ServiceResult.fail(ALREADY_LINKED_TO_DOCTOR)
            return ServiceResult.fail(ALREADY_HAS_DOCTOR)

        if PatientDoctorLink.pending_for_patient(patient_id):
            return ServiceResult.fail("Hai già una richiesta di collegamento in attesa")

        link = PatientDoctorLink(
            patient_id=patient_id,
            doctor_id=doctor_id,
            status='pending',
            initiated_by='patient',
            message=message,
        )
        db.session.add(link)
        db.session.commit()

        self.logger.info(f"Connection request {link.id}: patient {patient_id} -> doctor {doctor_id}")
        return ServiceResult.ok("Richiesta inviata con successo", link=link)

    def respond_to_request(self, request_id, doctor_id, response, note=None) -> ServiceResult:
        if response not in ('approved', 'rejected'):
            return ServiceResult.fail("Risposta non valida")

        link_id = parse_record_id(request_id)
        link = db.session.get(PatientDoctorLink, link_id) if link_id is not None else None
        if not link:
            return ServiceResult.fail("Richiesta non trovata")

        if link.doctor_id != doctor_id:
            return ServiceResult.fail("Non autorizzato a rispondere a questa richiesta")

        if not link.is_pending():
            return ServiceResult.fail("Richiesta già gestita")

        now = datetime.utcnow()
        if response == 'approved':
            if PatientDoctorLink.active_for_patient(link.patient_id):
                return ServiceResult.fail("Il paziente è già collegato a un medico")
            link.status = 'active'
            link.linked_at = now
            message = "Richiesta accettata. Paziente collegato con successo."
        else:
            link.status = 'rejected'
            message = "Richiesta rifiutata."

        link.responded_at = now
        link.notes = note
        AuditLog.record(f'connection_{response}', user_id=doctor_id,
                        details={'link_id': link.id, 'patient_id': link.patient_id})
        db.session.commit()

        self.logger.info(f"Connection request {link.id} {response} by doctor {doctor_id}")
        return ServiceResult.ok(message, link=link)

    def create_doctor_invite(self, doctor_id, patient_email=None, message=None,
                             expires_in_days=7) -> ServiceResult:
        doctor = db.session.get(Doctor, doctor_id)
        if not doctor or not doctor.is_approved():
            return ServiceResult.fail("Medico non trovato o non approvato")

        if patient_email:
            email_validation = validate_email(patient_email)
            if not email_validation.is_valid:
                return ServiceResult.fail(email_validation.error_message)
            patient_email = email_validation.sanitized_value

        invite = DoctorInvite(doctor_id, patient_email=patient_email, message=message,
                              expires_in_days=expires_in_days)
        db.session.add(invite)
        db.session.commit()

        self.logger.info(f"Invite {invite.id} created by doctor {doctor_id}")
        return ServiceResult.ok("Invito creato con successo", invite=invite,
                                invite_token=invite.invite_token)

    def accept_invite(self, token, patient_id) -> ServiceResult:
        invite = DoctorInvite.find_valid(token)
        if not invite:
            return ServiceResult.fail("Invito non valido o scaduto")

        if not db.session.get(Patient, patient_id):
            return ServiceResult.fail("Paziente non trovato")

        active = PatientDoctorLink.active_for_patient(patient_id)
        if active:
            if active.doctor_id == invite.doctor_id:
                return ServiceResult.fail(ALREADY_LINKED_TO_DOCTOR)
            return ServiceResult.fail(ALREADY_HAS_DOCTOR)

        now = datetime.utcnow()
        link = PatientDoctorLink(
            patient_id=patient_id,
            doctor_id=invite.doctor_id,
            status='active',
            initiated_by='doctor',
            requested_at=now,
            linked_at=now,
            notes='Collegamento tramite invito diretto del medico',
        )
        db.session.add(link)
        invite.mark_used(patient_id)
        AuditLog.record('invite_accepted', user_id=patient_id,
                        details={'invite_id': invite.id, 'doctor_id': invite.doctor_id})
        db.session.commit()

        return ServiceResult.ok("Collegamento creato con successo!", link=link, doctor=invite.doctor)

    def connection_status(self, patient_id) -> Dict[str, Any]:
        active = PatientDoctorLink.active_for_patient(patient_id)
        if active:
            doctor = active.doctor
            return {
                'success': True,
                'status': 'connected',
                'connection': {
                    'doctorId': doctor.id,
                    'doctorName': doctor.full_name,
                    'doctorFirstName': doctor.first_name,
                    'doctorLastName': doctor.last_name,
                    'linkedAt': active.linked_at.isoformat() if active.linked_at else None,
                },
                'pendingRequest': None,
            }

        pending = PatientDoctorLink.pending_for_patient(patient_id)
        if pending:
            doctor = pending.doctor
            return {
                'success': True,
                'status': 'pending',
                'connection': None,
                'pendingRequest': {
                    'id': pending.id,
                    'doctorId': doctor.id,
                    'message': pending.message,
                    'createdAt': pending.requested_at.isoformat() if pending.requested_at else None,
                    'doctors': {
                        'first_name': doctor.first_name,
                        'last_name': doctor.last_name,
                        'specialization': doctor.specialization or '',
                    },
                },
            }

        return {
            'success': True,
            'status': 'unconnected',
            'connection': None,
            'pendingRequest': None,
        }


# Global instance
connection_service = ConnectionService()

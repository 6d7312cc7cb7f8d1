"""
Prescription Service

FLOW OVERVIEW
- create_request(patient_id, doctor_id, medications, urgency, patient_notes)
  • A patient asks their linked doctor for medications → pending request with items.
- respond(request_id, doctor_id, response, doctor_response, doctor_notes)
  • The owning doctor answers a pending request. 'approved' issues one
    Prescription per item; 'rejected' and 'requires_appointment' close it.
"""

import logging
from datetime import datetime

from ..models import db, AuditLog, Patient, PatientDoctorLink, Prescription, PrescriptionItem, PrescriptionRequest
from .connection_service import ServiceResult, parse_record_id

RESPONSE_MESSAGES = {
    'approved': "Prescrizione approvata",
    'rejected': "Richiesta di prescrizione rifiutata",
    'requires_appointment': "Richiesta chiusa: è necessario un appuntamento",
}


def optional_text(value, max_length=255):
    if not isinstance(value, str):
        return None
    return value.strip()[:max_length] or None


class PrescriptionService:
    """Prescription requests between linked patients and doctors."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def create_request(self, patient_id, doctor_id, medications, urgency='normal',
                       patient_notes=None) -> ServiceResult:
        if not db.session.get(Patient, patient_id):
            return ServiceResult.fail("Solo i pazienti possono richiedere prescrizioni")

        link = PatientDoctorLink.active_for_patient(patient_id)
        if not link or link.doctor_id != doctor_id:
            return ServiceResult.fail("Devi essere collegato a questo medico per richiedere una prescrizione")

        prescription_request = PrescriptionRequest(
            patient_id=patient_id,
            doctor_id=doctor_id,
            status='pending',
            urgency=urgency,
            patient_notes=optional_text(patient_notes, 2000),
        )
        for med in medications:
            prescription_request.items.append(PrescriptionItem(
                medication_name=optional_text(med.get('medication_name'), 200),
                dosage=optional_text(med.get('dosage'), 100),
                quantity=optional_text(med.get('quantity'), 100),
                patient_reason=optional_text(med.get('patient_reason'), 2000),
            ))
        db.session.add(prescription_request)
        db.session.commit()

        self.logger.info(f"Prescription request {prescription_request.id}: "
                         f"patient {patient_id} -> doctor {doctor_id}")
        return ServiceResult.ok("Richiesta di prescrizione inviata con successo", request=prescription_request)

    def respond(self, request_id, doctor_id, response, doctor_response, doctor_notes=None) -> ServiceResult:
        if response not in RESPONSE_MESSAGES:
            return ServiceResult.fail("Tipo di risposta non valido")

        record_id = parse_record_id(request_id)
        prescription_request = db.session.get(PrescriptionRequest, record_id) if record_id is not None else None
        if not prescription_request:
            return ServiceResult.fail("Richiesta non trovata")

        if prescription_request.doctor_id != doctor_id:
            return ServiceResult.fail("Non autorizzato a rispondere a questa richiesta")

        if not prescription_request.is_pending():
            return ServiceResult.fail("Richiesta già gestita")

        prescription_request.status = response
        prescription_request.doctor_response = doctor_response
        prescription_request.doctor_notes = doctor_notes
        prescription_request.responded_at = datetime.utcnow()

        if response == 'approved':
            for item in prescription_request.items:
                db.session.add(Prescription(
                    patient_id=prescription_request.patient_id,
                    doctor_id=doctor_id,
                    request_id=prescription_request.id,
                    medication=item.medication_name,
                    dosage=item.dosage,
                    instructions=doctor_response,
                ))

        AuditLog.record(f'prescription_{response}', user_id=doctor_id,
                        details={'request_id': prescription_request.id,
                                 'patient_id': prescription_request.patient_id})
        db.session.commit()

        self.logger.info(f"Prescription request {prescription_request.id} {response} by doctor {doctor_id}")
        return ServiceResult.ok(RESPONSE_MESSAGES[response], request=prescription_request,
                                response_type=response)


# Global instance
prescription_service = PrescriptionService()

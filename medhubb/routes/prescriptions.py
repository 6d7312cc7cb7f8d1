"""
Prescription Routes

FLOW OVERVIEW
- /api/prescriptions [GET] ?doctorId|patientId&status&urgency
  • A doctor or a patient lists their own prescription requests, newest first.
- /api/prescriptions [POST]
  • Patient asks their linked doctor for up to ten medications.
- /api/prescriptions [PUT]
  • Doctor answers: 'approved', 'rejected' or 'requires_appointment'.
"""

from flask import Blueprint, jsonify, request, current_app

from ..models import db, PrescriptionRequest
from ..models.clinical import PRESCRIPTION_RESPONSES, URGENCY_LEVELS
from ..utils.auth_utils import authenticate_request, get_json_body
from ..utils.prescription_service import prescription_service
from ..utils.validators import sanitize_input

prescriptions_bp = Blueprint('prescriptions', __name__)

MAX_MEDICATIONS = 10


def has_medication_name(med):
    name = med.get('medication_name') if isinstance(med, dict) else None
    return isinstance(name, str) and name.strip() != ''


@prescriptions_bp.route('', methods=['GET'])
def list_prescriptions():
    """Prescription requests of the authenticated doctor or patient"""
    doctor_id = request.args.get('doctorId')
    patient_id = request.args.get('patientId')
    status = request.args.get('status')
    urgency = request.args.get('urgency')

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    is_doctor = doctor_id == user.id
    is_patient = patient_id == user.id
    if not is_doctor and not is_patient:
        current_app.logger.warning(f"User {user.id} tried to list prescriptions of someone else")
        return jsonify({'error': 'Non autorizzato'}), 403

    try:
        if is_doctor:
            query = PrescriptionRequest.query.filter_by(doctor_id=user.id)
        else:
            query = PrescriptionRequest.query.filter_by(patient_id=user.id)

        if status:
            query = query.filter(PrescriptionRequest.status == status)
        if urgency:
            query = query.filter(PrescriptionRequest.urgency == urgency)

        requests_data = [r.to_dict() for r in query.order_by(PrescriptionRequest.created_at.desc(),
                                                              PrescriptionRequest.id.desc()).all()]
    except Exception as e:
        current_app.logger.error(f"Error fetching prescriptions: {str(e)}")
        return jsonify({'error': 'Errore nel recupero delle prescrizioni'}), 500

    return jsonify({'success': True, 'prescriptions': requests_data, 'count': len(requests_data)})


@prescriptions_bp.route('', methods=['POST'])
def create_prescription_request():
    """Patient asks for medications"""
    data = get_json_body()
    doctor_id = data.get('doctorId')
    medications = data.get('medications')
    urgency = data.get('urgency') or 'normal'

    if not doctor_id or not isinstance(medications, list) or not medications:
        return jsonify({'error': 'Doctor ID e lista farmaci sono obbligatori'}), 400

    if len(medications) > MAX_MEDICATIONS:
        return jsonify({'error': 'Massimo 10 farmaci per richiesta'}), 400

    if not all(has_medication_name(med) for med in medications):
        return jsonify({'error': 'Nome farmaco è obbligatorio per tutti i farmaci'}), 400

    if urgency not in URGENCY_LEVELS:
        return jsonify({'error': 'Livello di urgenza non valido'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = prescription_service.create_request(
            user.id, doctor_id, medications, urgency=urgency, patient_notes=data.get('patientNotes')
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating prescription request: {str(e)}")
        return jsonify({'error': 'Errore nella creazione della richiesta di prescrizione'}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({
        'success': True,
        'message': result.message,
        'request_id': result.data['request'].id,
    })


@prescriptions_bp.route('', methods=['PUT'])
def respond_to_prescription():
    """Doctor answers a prescription request"""
    data = get_json_body()
    request_id = data.get('requestId')
    response = data.get('response')
    doctor_response = sanitize_input(data.get('doctorResponse'), 2000)

    if not request_id or not response or not doctor_response:
        return jsonify({
            'error': 'Request ID, risposta e messaggio del dottore sono obbligatori'
        }), 400

    if response not in PRESCRIPTION_RESPONSES:
        return jsonify({'error': 'Tipo di risposta non valido'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = prescription_service.respond(
            request_id, user.id, response, doctor_response,
            doctor_notes=sanitize_input(data.get('doctorNotes'), 2000) or None,
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error responding to prescription: {str(e)}")
        return jsonify({'error': 'Errore nella risposta alla prescrizione'}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({
        'success': True,
        'message': result.message,
        'response_type': result.data['response_type'],
    })

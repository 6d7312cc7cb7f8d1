"""
Appointment Routes

FLOW OVERVIEW
- /api/appointments [GET] ?doctorId|patientId&status&date&dateRange
  • A doctor or a patient lists their own appointments by date and time.
    dateRange is 'upcoming', 'past' or 'all'.
- /api/appointments [POST]
  • Patient requests a visit at an office of their linked doctor.
- /api/appointments [PUT]
  • Doctor confirms, reschedules or rejects a request.
- /api/appointments [PATCH]
  • Either party cancels an open appointment.
"""

from datetime import date

from flask import Blueprint, jsonify, request, current_app

from ..models import db, Appointment
from ..models.clinical import VISIT_TYPES
from ..utils.auth_utils import authenticate_request, get_json_body
from ..utils.connection_service import parse_record_id
from ..utils.scheduling_service import scheduling_service
from ..utils.validators import parse_date, parse_time, sanitize_input

appointments_bp = Blueprint('appointments', __name__)

DOCTOR_ACTIONS = ('confirm', 'reschedule', 'reject')


def validate_appointment_date(value):
    """Return (date, error_response) for a booking date that is today or later"""
    day = parse_date(value)
    if not day:
        return None, (jsonify({'error': 'Formato data non valido'}), 400)
    if day < date.today():
        return None, (jsonify({'error': "L'appuntamento deve essere nel futuro"}), 400)
    return day, None


@appointments_bp.route('', methods=['GET'])
def list_appointments():
    """Appointments of the authenticated doctor or patient"""
    doctor_id = request.args.get('doctorId')
    patient_id = request.args.get('patientId')
    status = request.args.get('status')
    raw_date = request.args.get('date')
    date_range = request.args.get('dateRange')

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    is_doctor = doctor_id == user.id
    is_patient = patient_id == user.id
    if not is_doctor and not is_patient:
        current_app.logger.warning(f"User {user.id} tried to list appointments of someone else")
        return jsonify({'error': 'Non autorizzato'}), 403

    try:
        if is_doctor:
            query = Appointment.query.filter_by(doctor_id=user.id)
        else:
            query = Appointment.query.filter_by(patient_id=user.id)

        if status:
            query = query.filter(Appointment.status == status)

        if raw_date:
            day = parse_date(raw_date)
            if not day:
                return jsonify({'error': 'Formato data non valido'}), 400
            query = query.filter(Appointment.appointment_date == day)

        today = date.today()
        if date_range == 'upcoming':
            query = query.filter(Appointment.appointment_date >= today)
        elif date_range == 'past':
            query = query.filter(Appointment.appointment_date < today)

        appointments = query.order_by(Appointment.appointment_date.asc(),
                                      Appointment.start_time.asc()).all()
    except Exception as e:
        current_app.logger.error(f"Error fetching appointments: {str(e)}")
        return jsonify({'error': 'Errore nel recupero degli appuntamenti'}), 500

    data = [a.to_detail_dict() for a in appointments]
    return jsonify({'success': True, 'appointments': data, 'count': len(data)})


@appointments_bp.route('', methods=['POST'])
def request_appointment():
    """Patient asks their doctor for a visit"""
    data = get_json_body()
    doctor_id = data.get('doctorId')
    office_id = data.get('requestedOfficeId')
    visit_type = data.get('visitType') or 'follow_up'

    if (not doctor_id or not office_id or not data.get('appointmentDate')
            or not data.get('startTime') or not data.get('endTime')):
        return jsonify({
            'error': 'Doctor ID, Office ID, data, orario inizio e fine sono obbligatori'
        }), 400

    if visit_type not in VISIT_TYPES:
        return jsonify({'error': 'Tipo di visita non valido'}), 400

    day, error = validate_appointment_date(data.get('appointmentDate'))
    if error:
        return error

    start_time, end_time = parse_time(data.get('startTime')), parse_time(data.get('endTime'))
    if not start_time or not end_time:
        return jsonify({'error': 'Formato orario non valido'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.request_appointment(
            user.id, doctor_id, office_id, day, start_time, end_time,
            visit_type=visit_type,
            patient_notes=sanitize_input(data.get('patientNotes'), 2000) or None,
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating appointment request: {str(e)}")
        return jsonify({'error': 'Errore nella creazione della richiesta di appuntamento'}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({
        'success': True,
        'message': result.message,
        'appointment_id': result.data['appointment'].id,
    })


@appointments_bp.route('', methods=['PUT'])
def update_appointment():
    """Doctor confirms, reschedules or rejects an appointment"""
    data = get_json_body()
    appointment_id = data.get('appointmentId')
    office_id = data.get('confirmedOfficeId')
    action = data.get('action') or 'confirm'

    if not appointment_id or not office_id:
        return jsonify({'error': 'Appointment ID, Office ID e azione sono obbligatori'}), 400

    if action not in DOCTOR_ACTIONS:
        return jsonify({'error': 'Azione non valida'}), 400

    day = start_time = end_time = None
    if action == 'reschedule':
        if not data.get('appointmentDate') or not data.get('startTime') or not data.get('endTime'):
            return jsonify({'error': 'Data e orari sono richiesti per riprogrammare'}), 400

        day, error = validate_appointment_date(data.get('appointmentDate'))
        if error:
            return error

        start_time, end_time = parse_time(data.get('startTime')), parse_time(data.get('endTime'))
        if not start_time or not end_time:
            return jsonify({'error': 'Formato orario non valido'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.confirm_appointment(
            user.id, appointment_id, office_id, action, day, start_time, end_time,
            doctor_notes=sanitize_input(data.get('doctorNotes'), 2000) or None,
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating appointment: {str(e)}")
        return jsonify({'error': "Errore nell'aggiornamento dell'appuntamento"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message})


@appointments_bp.route('', methods=['PATCH'])
def cancel_appointment():
    """Patient or doctor cancels an open appointment"""
    data = get_json_body()
    appointment_id = data.get('appointmentId')
    if not appointment_id:
        return jsonify({'error': 'Appointment ID è obbligatorio'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    record_id = parse_record_id(appointment_id)
    appointment = db.session.get(Appointment, record_id) if record_id is not None else None
    if not appointment:
        return jsonify({'error': 'Appuntamento non trovato'}), 404

    is_doctor = appointment.doctor_id == user.id
    if not is_doctor and appointment.patient_id != user.id:
        return jsonify({'error': 'Non autorizzato'}), 403

    try:
        result = scheduling_service.cancel_appointment(
            appointment, by_doctor=is_doctor, reason=sanitize_input(data.get('reason'), 2000) or None
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error cancelling appointment: {str(e)}")
        return jsonify({'error': "Errore nella cancellazione dell'appuntamento"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message})

"""
Office Routes

FLOW OVERVIEW
- /api/offices [GET] ?doctorId
  • Doctor-only: own offices with their weekly schedules, newest first.
- /api/offices [POST] / [PUT] / [DELETE] ?officeId
  • Approved doctor creates, updates or deactivates an office.
- /api/offices/schedules [GET] ?officeId|doctorId
  • Active schedules of the authenticated doctor, by weekday.
- /api/offices/schedules [POST] / [DELETE] ?officeId&dayOfWeek
  • Set or remove the opening hours of one weekday (0 = Sunday).
- /api/offices/availability [GET] ?doctorId&officeId&date&startTime&endTime
  • Whether a time range can still be booked.
- /api/offices/availability [POST]
  • Free slots of one day for a visit type.
"""

from datetime import date

from flask import Blueprint, jsonify, request, current_app

from ..models import db, DoctorOffice, OfficeSchedule
from ..models.clinical import VISIT_TYPES
from ..models.utils import clock
from ..utils.auth_utils import authenticate_request, authorize_user, get_json_body
from ..utils.connection_service import parse_record_id
from ..utils.scheduling_service import scheduling_service
from ..utils.validators import parse_date, parse_time

offices_bp = Blueprint('offices', __name__)

MIN_SLOT_DURATION = 15
MAX_SLOT_DURATION = 120


def parse_day_of_week(value):
    """0-6 from an int or digit string; None otherwise"""
    day = parse_record_id(value)
    if day is None or not 0 <= day <= 6:
        return None
    return day


def validate_future_date(value):
    """Return (date, error_response); the date may be today"""
    day = parse_date(value)
    if not day:
        return None, (jsonify({'error': 'Formato data non valido'}), 400)
    if day < date.today():
        return None, (jsonify({'error': 'La data deve essere nel futuro'}), 400)
    return day, None


@offices_bp.route('', methods=['GET'])
def list_offices():
    """Offices of the authenticated doctor"""
    doctor_id = request.args.get('doctorId')
    if not doctor_id:
        return jsonify({'error': 'Doctor ID richiesto'}), 400

    _, error = authorize_user(doctor_id)
    if error:
        return error

    try:
        offices = (DoctorOffice.query.filter_by(doctor_id=doctor_id)
                   .order_by(DoctorOffice.created_at.desc(), DoctorOffice.id.desc()).all())
    except Exception as e:
        current_app.logger.error(f"Error fetching offices: {str(e)}")
        return jsonify({'error': 'Errore nel recupero degli ambulatori'}), 500

    data = [office.to_dict() for office in offices]
    return jsonify({'success': True, 'offices': data, 'count': len(data)})


@offices_bp.route('', methods=['POST'])
def create_office():
    """Add an office for the authenticated doctor"""
    data = get_json_body()
    if not data.get('name') or not data.get('address') or not data.get('city'):
        return jsonify({'error': 'Nome, indirizzo e città sono obbligatori'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.save_office(user.id, data)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating office: {str(e)}")
        return jsonify({'error': "Errore nella creazione dell'ambulatorio"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message, 'office_id': result.data['office'].id})


@offices_bp.route('', methods=['PUT'])
def update_office():
    """Edit one of the authenticated doctor's offices"""
    data = get_json_body()
    if not data.get('office_id') or not data.get('name') or not data.get('address') or not data.get('city'):
        return jsonify({'error': 'Office ID, nome, indirizzo e città sono obbligatori'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.save_office(user.id, data, office_id=data['office_id'])
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating office: {str(e)}")
        return jsonify({'error': "Errore nell'aggiornamento dell'ambulatorio"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message})


@offices_bp.route('', methods=['DELETE'])
def deactivate_office():
    """Soft-delete one of the authenticated doctor's offices"""
    office_id = request.args.get('officeId')
    if not office_id:
        return jsonify({'error': 'Office ID richiesto'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.deactivate_office(user.id, office_id)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deactivating office: {str(e)}")
        return jsonify({'error': "Errore nella disattivazione dell'ambulatorio"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 404

    return jsonify({'success': True, 'message': result.message})


@offices_bp.route('/schedules', methods=['GET'])
def list_schedules():
    """Active weekly schedules of the authenticated doctor"""
    office_id = request.args.get('officeId')
    doctor_id = request.args.get('doctorId')
    if not office_id and not doctor_id:
        return jsonify({'error': 'Office ID o Doctor ID richiesto'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    if doctor_id and doctor_id != user.id:
        return jsonify({'error': 'Non autorizzato'}), 403

    try:
        query = OfficeSchedule.query.filter_by(doctor_id=user.id, is_active=True)
        if office_id:
            query = query.filter(OfficeSchedule.office_id == parse_record_id(office_id))
        schedules = query.order_by(OfficeSchedule.day_of_week, OfficeSchedule.start_time).all()
    except Exception as e:
        current_app.logger.error(f"Error fetching schedules: {str(e)}")
        return jsonify({'error': 'Errore nel recupero degli orari'}), 500

    data = [dict(s.to_dict(), doctor_offices=s.office.to_summary_dict()) for s in schedules]
    return jsonify({'success': True, 'schedules': data, 'count': len(data)})


@offices_bp.route('/schedules', methods=['POST'])
def set_schedule():
    """Create or replace the opening hours of one weekday"""
    data = get_json_body()
    office_id = data.get('office_id')
    raw_day = data.get('day_of_week')

    if not office_id or raw_day is None or not data.get('start_time') or not data.get('end_time'):
        return jsonify({
            'error': 'Office ID, giorno della settimana, orario inizio e fine sono obbligatori'
        }), 400

    day_of_week = parse_day_of_week(raw_day)
    if day_of_week is None:
        return jsonify({'error': 'Giorno della settimana deve essere tra 0 (Domenica) e 6 (Sabato)'}), 400

    slot_duration = parse_record_id(data.get('slot_duration') or 30)
    if slot_duration is None or not MIN_SLOT_DURATION <= slot_duration <= MAX_SLOT_DURATION:
        return jsonify({'error': 'Durata slot deve essere tra 15 e 120 minuti'}), 400

    start_time = parse_time(data.get('start_time'))
    end_time = parse_time(data.get('end_time'))
    if not start_time or not end_time:
        return jsonify({'error': 'Formato orario non valido'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.set_schedule(user.id, office_id, day_of_week,
                                                 start_time, end_time, slot_duration)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error setting office schedule: {str(e)}")
        return jsonify({'error': "Errore nell'impostazione degli orari"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message})


@offices_bp.route('/schedules', methods=['DELETE'])
def remove_schedule():
    """Stop receiving at an office on one weekday"""
    office_id = request.args.get('officeId')
    raw_day = request.args.get('dayOfWeek')
    if not office_id or raw_day is None:
        return jsonify({'error': 'Office ID e giorno della settimana sono richiesti'}), 400

    day_of_week = parse_day_of_week(raw_day)
    if day_of_week is None:
        return jsonify({'error': 'Giorno della settimana deve essere tra 0 e 6'}), 400

    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = scheduling_service.remove_schedule(user.id, office_id, day_of_week)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error removing schedule: {str(e)}")
        return jsonify({'error': "Errore nella rimozione dell'orario"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 404

    return jsonify({'success': True, 'message': result.message})


@offices_bp.route('/availability', methods=['GET'])
def check_availability():
    """Can the given time range be booked?"""
    doctor_id = request.args.get('doctorId')
    office_id = request.args.get('officeId')
    raw_date = request.args.get('date')
    raw_start = request.args.get('startTime')
    raw_end = request.args.get('endTime')

    if not doctor_id or not office_id or not raw_date or not raw_start or not raw_end:
        return jsonify({'error': 'Doctor ID, Office ID, date, startTime e endTime sono obbligatori'}), 400

    day, error = validate_future_date(raw_date)
    if error:
        return error

    start_time, end_time = parse_time(raw_start), parse_time(raw_end)
    if not start_time or not end_time:
        return jsonify({'error': 'Formato orario non valido'}), 400

    _, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        availability = scheduling_service.check_availability(
            doctor_id, parse_record_id(office_id), day, start_time, end_time
        )
    except Exception as e:
        current_app.logger.error(f"Error checking availability: {str(e)}")
        return jsonify({'error': 'Errore nel controllo della disponibilità'}), 500

    return jsonify({'success': True, 'availability': availability})


@offices_bp.route('/availability', methods=['POST'])
def available_slots():
    """Free slots at an office on one day"""
    data = get_json_body()
    doctor_id = data.get('doctorId')
    office_id = data.get('officeId')
    visit_type = data.get('visitType') or 'follow_up'

    if not doctor_id or not office_id or not data.get('date'):
        return jsonify({'error': 'Doctor ID, Office ID e date sono obbligatori'}), 400

    if visit_type not in VISIT_TYPES:
        return jsonify({'error': 'Tipo di visita non valido'}), 400

    day, error = validate_future_date(data.get('date'))
    if error:
        return error

    _, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        schedule, slots = scheduling_service.available_slots(
            doctor_id, parse_record_id(office_id), day, visit_type
        )
    except Exception as e:
        current_app.logger.error(f"Error computing available slots: {str(e)}")
        return jsonify({'error': 'Errore nel recupero degli appuntamenti esistenti'}), 500

    if not schedule:
        return jsonify({
            'success': True,
            'availableSlots': [],
            'message': 'Nessun orario disponibile per questo giorno',
        })

    return jsonify({
        'success': True,
        'availableSlots': slots,
        'officeSchedule': {
            'start_time': clock(schedule.start_time),
            'end_time': clock(schedule.end_time),
            'slot_duration': schedule.slot_duration,
        },
        'totalSlots': len(slots),
    })

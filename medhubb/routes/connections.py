"""
Connection Routes

FLOW OVERVIEW
- /api/connections/doctors [GET]
  • Public directory of approved doctors, by last name.
- /api/connections/patients [GET] ?doctorId
  • Doctor-only: active links, newest first.
- /api/connections/request [POST]
  • Patient-only: file a connection request to a doctor.
- /api/connections/requests [GET] ?doctorId
  • Doctor-only: pending requests, newest first.
- /api/connections/respond [POST]
  • Doctor answers a request ('accepted' | 'rejected').
- /api/connections/status [GET] ?patientId
  • Patient-only: connected / pending / unconnected.
- /api/connections/invites/create [POST]
  • Doctor-only: issue an invite link.
- /api/connections/invites/accept [GET] ?token
  • Invite preview for the landing page.
- /api/connections/invites/accept [POST]
  • Patient-only: redeem an invite and link directly.

Every user-scoped route checks that the Bearer token belongs to the id in the
request (403 otherwise); business-rule failures from the connection service are 400.
"""

from flask import Blueprint, jsonify, request, current_app

from ..models import db, Doctor, DoctorInvite, PatientDoctorLink
from ..utils.auth_utils import authenticate_request, authorize_user, get_json_body
from ..utils.connection_service import connection_service

connections_bp = Blueprint('connections', __name__)

RESPONSE_TO_STATUS = {'accepted': 'approved', 'rejected': 'rejected'}


@connections_bp.route('/doctors', methods=['GET'])
def available_doctors():
    """Approved doctors a patient can request"""
    try:
        doctors = (Doctor.query.filter_by(status='approved')
                   .order_by(Doctor.last_name.asc()).all())
    except Exception as e:
        current_app.logger.error(f"Error fetching approved doctors: {str(e)}")
        return jsonify({'error': 'Errore nel recupero medici'}), 500

    data = [{
        'id': d.id,
        'first_name': d.first_name,
        'last_name': d.last_name,
        'email': d.email,
        'order_number': d.order_number,
        'specialization': d.specialization,
        'status': d.status,
        'created_at': d.created_at.isoformat() if d.created_at else None,
    } for d in doctors]

    return jsonify({'success': True, 'doctors': data, 'count': len(data)})


@connections_bp.route('/patients', methods=['GET'])
def my_patients():
    """Active patients of the authenticated doctor"""
    doctor_id = request.args.get('doctorId')
    if not doctor_id:
        return jsonify({'error': 'Doctor ID richiesto'}), 400

    _, error = authorize_user(doctor_id)
    if error:
        return error

    try:
        # Inner join: links whose patient row is missing are left out
        links = (PatientDoctorLink.query.join(PatientDoctorLink.patient)
                 .filter(PatientDoctorLink.doctor_id == doctor_id, PatientDoctorLink.status == 'active')
                 .order_by(PatientDoctorLink.linked_at.desc()).all())
    except Exception as e:
        current_app.logger.error(f"Error fetching doctor patients: {str(e)}")
        return jsonify({'error': 'Errore nel recupero dei pazienti'}), 500

    patients = [{
        'link_id': link.id,
        'patient_id': link.patient_id,
        'first_name': link.patient.first_name,
        'last_name': link.patient.last_name,
        'email': link.patient.email,
        'linked_at': link.linked_at.isoformat() if link.linked_at else None,
    } for link in links]

    return jsonify({'success': True, 'patients': patients, 'count': len(patients)})


@connections_bp.route('/request', methods=['POST'])
def request_doctor():
    """Patient asks to be linked to a doctor"""
    data = get_json_body()
    patient_id = data.get('patientId')
    doctor_id = data.get('doctorId')

    if not patient_id or not doctor_id:
        return jsonify({'error': 'Patient ID e Doctor ID sono obbligatori'}), 400

    _, error = authorize_user(patient_id)
    if error:
        return error

    try:
        result = connection_service.create_patient_request(patient_id, doctor_id, data.get('message') or None)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating request: {str(e)}")
        return jsonify({'error': 'Errore nella creazione della richiesta'}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message})


@connections_bp.route('/requests', methods=['GET'])
def pending_requests():
    """Pending requests addressed to the authenticated doctor"""
    doctor_id = request.args.get('doctorId')
    if not doctor_id:
        return jsonify({'error': 'Doctor ID richiesto'}), 400

    _, error = authorize_user(doctor_id)
    if error:
        return error

    try:
        links = (PatientDoctorLink.query.join(PatientDoctorLink.patient)
                 .filter(PatientDoctorLink.doctor_id == doctor_id, PatientDoctorLink.status == 'pending')
                 .order_by(PatientDoctorLink.requested_at.desc()).all())
    except Exception as e:
        current_app.logger.error(f"Error fetching pending requests: {str(e)}")
        return jsonify({'error': 'Errore nel recupero delle richieste'}), 500

    requests_data = [{
        'id': link.id,
        'patient_id': link.patient_id,
        'patient_first_name': link.patient.first_name,
        'patient_last_name': link.patient.last_name,
        'patient_email': link.patient.email,
        'message': link.message,
        'created_at': link.requested_at.isoformat() if link.requested_at else None,
    } for link in links]

    return jsonify({'success': True, 'requests': requests_data, 'count': len(requests_data)})


@connections_bp.route('/respond', methods=['POST'])
def respond_to_request():
    """Doctor accepts or rejects a pending request"""
    data = get_json_body()
    request_id = data.get('requestId')
    doctor_id = data.get('doctorId')
    response = data.get('response')

    if not request_id or not doctor_id or not response:
        return jsonify({'error': 'Request ID, Doctor ID e response sono obbligatori'}), 400

    if response not in RESPONSE_TO_STATUS:
        return jsonify({'error': "Response deve essere 'accepted' o 'rejected'"}), 400

    # Ownership of the request itself is checked by the service
    user, error = authenticate_request('Non autenticato')
    if error:
        return error

    try:
        result = connection_service.respond_to_request(
            request_id, user.id, RESPONSE_TO_STATUS[response], data.get('notes') or None
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error responding to request: {str(e)}")
        return jsonify({'error': 'Errore nella risposta alla richiesta'}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({'success': True, 'message': result.message})


@connections_bp.route('/status', methods=['GET'])
def connection_status():
    """Connection state shown on the patient dashboard"""
    patient_id = request.args.get('patientId')
    if not patient_id:
        return jsonify({'error': 'Patient ID richiesto'}), 400

    _, error = authorize_user(patient_id, forbidden_message='Non autorizzato per questo paziente')
    if error:
        return error

    try:
        return jsonify(connection_service.connection_status(patient_id))
    except Exception as e:
        current_app.logger.error(f"Status query error: {str(e)}")
        return jsonify({'error': 'Errore nel controllo dello status'}), 500


@connections_bp.route('/invites/create', methods=['POST'])
def create_invite():
    """Doctor generates an invite link"""
    data = get_json_body()
    doctor_id = data.get('doctorId')

    if not doctor_id:
        return jsonify({'error': 'Doctor ID richiesto'}), 400

    _, error = authorize_user(doctor_id)
    if error:
        return error

    try:
        result = connection_service.create_doctor_invite(
            doctor_id,
            patient_email=data.get('patientEmail') or None,
            message=data.get('message') or None,
            expires_in_days=current_app.config.get('INVITE_EXPIRY_DAYS', 7),
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating invite: {str(e)}")
        return jsonify({'error': "Errore nella creazione dell'invito"}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    invite_token = result.data['invite_token']
    return jsonify({
        'success': True,
        'inviteToken': invite_token,
        'inviteLink': f"{current_app.config.get('APP_URL', '')}/invite/{invite_token}",
        'message': result.message,
    })


@connections_bp.route('/invites/accept', methods=['GET'])
def get_invite():
    """Invite details for the invite landing page"""
    token = request.args.get('token')
    if not token:
        return jsonify({'error': 'Token di invito richiesto'}), 400

    try:
        invite = DoctorInvite.find_valid(token)
    except Exception as e:
        current_app.logger.error(f"Get invite error: {str(e)}")
        return jsonify({'error': 'Errore server'}), 500

    if not invite:
        return jsonify({'error': 'Invito non valido o scaduto'}), 400

    details = invite.to_dict()
    details['doctor'] = dict(invite.doctor.to_summary_dict(), bio=invite.doctor.bio)
    return jsonify({'success': True, 'invite': details})


@connections_bp.route('/invites/accept', methods=['POST'])
def accept_invite():
    """Patient redeems an invite"""
    data = get_json_body()
    invite_token = data.get('inviteToken')
    patient_id = data.get('patientId')

    if not invite_token or not patient_id:
        return jsonify({'error': 'Token di invito e Patient ID richiesti'}), 400

    _, error = authorize_user(patient_id)
    if error:
        return error

    try:
        result = connection_service.accept_invite(invite_token, patient_id)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Accept invite error: {str(e)}")
        return jsonify({'error': 'Errore nella creazione del collegamento'}), 500

    if not result.success:
        return jsonify({'error': result.error}), 400

    return jsonify({
        'success': True,
        'linkId': result.data['link'].id,
        'doctor': result.data['doctor'].to_summary_dict(),
        'message': result.message,
    })

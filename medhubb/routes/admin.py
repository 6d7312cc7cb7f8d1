"""
Admin Routes

FLOW OVERVIEW
- /api/admin/auth/login [POST]
  • Compare the submitted password with ADMIN_MASTER_PASSWORD; the password itself
    is returned as the bearer token for the other admin routes.
- /api/admin/doctors/all [GET]
  • Every doctor, newest first, grouped and counted by status.
- /api/admin/doctors/pending [GET]
  • Doctors awaiting approval.
- /api/admin/doctors/approve [POST]
  • Mark approved and send the approval email (email failure is logged, not fatal).
- /api/admin/doctors/reject [POST]
  • Mark rejected.
"""

import time

from flask import Blueprint, jsonify, current_app

from ..models import db, Doctor, AuditLog
from ..models.doctor import DOCTOR_STATUSES
from ..utils.auth_utils import admin_required, client_ip, get_json_body, user_agent, verify_admin_token
from ..utils.email_service import EmailDeliveryError, send_approval_email
from ..utils.rate_limit import rate_limited, ADMIN_RATE_LIMIT

admin_bp = Blueprint('admin', __name__)

ADMIN_SESSION_SECONDS = 2 * 60 * 60


@admin_bp.route('/auth/login', methods=['POST'])
@rate_limited(ADMIN_RATE_LIMIT)
def admin_login():
    """Admin password check"""
    data = get_json_body()
    password = data.get('password')

    if not current_app.config.get('ADMIN_MASTER_PASSWORD'):
        current_app.logger.error("ADMIN_MASTER_PASSWORD not set in environment")
        return jsonify({'error': 'Configurazione admin non trovata'}), 500

    if not isinstance(password, str) or not verify_admin_token(password):
        current_app.logger.warning(f"Failed admin login from {client_ip()}")
        return jsonify({'error': 'Password non corretta'}), 401

    return jsonify({
        'success': True,
        'token': password,
        'expires': int((time.time() + ADMIN_SESSION_SECONDS) * 1000),
        'message': 'Login admin effettuato con successo'
    })


@admin_bp.route('/doctors/all', methods=['GET'])
@rate_limited(ADMIN_RATE_LIMIT)
@admin_required
def all_doctors():
    """List all doctors grouped by approval status"""
    try:
        doctors = Doctor.query.order_by(Doctor.created_at.desc()).all()
    except Exception as e:
        current_app.logger.error(f"Error fetching all doctors: {str(e)}")
        return jsonify({'error': 'Errore nel recupero dei dottori'}), 500

    data = [doctor.to_dict() for doctor in doctors]
    grouped = {status: [d for d in data if d['status'] == status] for status in DOCTOR_STATUSES}

    return jsonify({
        'success': True,
        'data': data,
        'grouped': grouped,
        'stats': {
            'total': len(data),
            'pending': len(grouped['pending']),
            'approved': len(grouped['approved']),
            'rejected': len(grouped['rejected']),
        }
    })


@admin_bp.route('/doctors/pending', methods=['GET'])
@rate_limited(ADMIN_RATE_LIMIT)
@admin_required
def pending_doctors():
    """List doctors awaiting approval"""
    try:
        doctors = (Doctor.query.filter_by(status='pending')
                   .order_by(Doctor.created_at.desc()).all())
    except Exception as e:
        current_app.logger.error(f"Get pending doctors error: {str(e)}")
        return jsonify({'error': 'Errore interno del server'}), 500

    data = [{
        'id': d.id,
        'email': d.email,
        'first_name': d.first_name,
        'last_name': d.last_name,
        'order_number': d.order_number,
        'created_at': d.created_at.isoformat() if d.created_at else None,
    } for d in doctors]

    return jsonify({'success': True, 'data': data, 'count': len(data)})


def _set_doctor_status(doctor_id, status):
    """Load a doctor and persist a new status; returns the doctor or None."""
    doctor = db.session.get(Doctor, doctor_id)
    if not doctor:
        return None
    doctor.status = status
    AuditLog.record(f'doctor_{status}', user_id=doctor.id, ip_address=client_ip(),
                    user_agent=user_agent(), details={'by': 'admin'})
    db.session.commit()
    return doctor


@admin_bp.route('/doctors/approve', methods=['POST'])
@rate_limited(ADMIN_RATE_LIMIT)
@admin_required
def approve_doctor():
    """Approve a doctor and notify them by email"""
    doctor_id = get_json_body().get('id')
    if not doctor_id:
        return jsonify({'error': 'ID del dottore è obbligatorio'}), 400

    try:
        doctor = _set_doctor_status(doctor_id, 'approved')
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Database error approving doctor {doctor_id}: {str(e)}")
        return jsonify({'error': 'Errore database'}), 500

    if not doctor:
        return jsonify({'error': 'Medico non trovato'}), 404

    try:
        send_approval_email(doctor)
        current_app.logger.info(f"Email di approvazione inviata a {doctor.email}")
    except EmailDeliveryError as e:
        current_app.logger.error(f"Errore invio email: {str(e)}")

    return jsonify({
        'success': True,
        'message': 'Medico approvato e email inviata',
        'doctor': {'id': doctor.id, 'email': doctor.email, 'name': doctor.full_name}
    })


@admin_bp.route('/doctors/reject', methods=['POST'])
@rate_limited(ADMIN_RATE_LIMIT)
@admin_required
def reject_doctor():
    """Reject a doctor's registration"""
    doctor_id = get_json_body().get('id')
    if not doctor_id:
        return jsonify({'error': 'ID del dottore è obbligatorio'}), 400

    try:
        doctor = _set_doctor_status(doctor_id, 'rejected')
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Database error rejecting doctor {doctor_id}: {str(e)}")
        return jsonify({'error': 'Errore database'}), 500

    if not doctor:
        return jsonify({'error': 'Medico non trovato'}), 404

    return jsonify({'success': True, 'message': 'Medico rifiutato'})

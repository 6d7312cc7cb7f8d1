"""
Patient Routes

FLOW OVERVIEW
- /api/doctor-patients [GET] ?doctorId
  • Doctor-only: connected patients for the dashboard patient list.
- /api/patients/profile [GET] ?patientId&doctorId
  • Doctor-only: profile, appointments and prescriptions of a linked patient.
"""

from flask import Blueprint, jsonify, request, current_app

from ..models import Appointment, PatientDoctorLink, Prescription
from ..utils.auth_utils import authorize_user

patients_bp = Blueprint('patients', __name__)


@patients_bp.route('/doctor-patients', methods=['GET'])
def doctor_patients():
    """Patients connected to the authenticated doctor"""
    doctor_id = request.args.get('doctorId')
    if not doctor_id:
        return jsonify({'error': 'Doctor ID è obbligatorio'}), 400

    _, error = authorize_user(doctor_id, invalid_message='Non autenticato')
    if error:
        return error

    try:
        links = PatientDoctorLink.query.filter_by(doctor_id=doctor_id, status='active').all()
    except Exception as e:
        current_app.logger.error(f"Error fetching connections: {str(e)}")
        return jsonify({'error': 'Errore nel recupero delle connessioni'}), 500

    patients = []
    for index, link in enumerate(links, start=1):
        patient = link.patient
        if patient and patient.first_name:
            patients.append({
                'id': link.patient_id,
                'first_name': patient.first_name,
                'last_name': patient.last_name,
                'email': patient.email,
            })
        else:
            # Profile row missing: keep the link visible with a placeholder name
            patients.append({
                'id': link.patient_id,
                'first_name': f'Paziente {index}',
                'last_name': f'({link.patient_id[:8]})',
                'email': '',
            })

    return jsonify({'success': True, 'patients': patients, 'count': len(patients)})


@patients_bp.route('/patients/profile', methods=['GET'])
def patient_profile():
    """Clinical overview of one linked patient"""
    patient_id = request.args.get('patientId')
    doctor_id = request.args.get('doctorId')

    _, error = authorize_user(doctor_id)
    if error:
        return error

    if not patient_id or not doctor_id:
        return jsonify({'error': 'Patient ID e Doctor ID sono obbligatori'}), 400

    try:
        link = PatientDoctorLink.query.filter_by(
            doctor_id=doctor_id, patient_id=patient_id, status='active'
        ).first()
        if not link or not link.patient:
            return jsonify({'error': 'Collegamento non trovato o non autorizzato'}), 403

        appointments = (Appointment.query.filter_by(patient_id=patient_id, doctor_id=doctor_id)
                        .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
                        .all())
        prescriptions = (Prescription.query.filter_by(patient_id=patient_id, doctor_id=doctor_id)
                         .order_by(Prescription.created_at.desc()).all())
    except Exception as e:
        current_app.logger.error(f"Patient profile error: {str(e)}")
        return jsonify({'error': 'Errore interno del server'}), 500

    connection_date = link.linked_at.isoformat() if link.linked_at else None
    patient = link.patient
    return jsonify({
        'success': True,
        'patient': {
            'id': patient.id,
            'first_name': patient.first_name,
            'last_name': patient.last_name,
            'email': patient.email,
            'phone': patient.phone,
            'date_of_birth': patient.date_of_birth.isoformat() if patient.date_of_birth else None,
            'created_at': connection_date,
        },
        'appointments': [a.to_dict() for a in appointments],
        'prescriptions': [p.to_dict() for p in prescriptions],
        'connectionDate': connection_date,
    })

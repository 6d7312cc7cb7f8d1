"""
Authentication Routes

FLOW OVERVIEW
- /api/auth/login [POST]
  • Verify credentials → resolve doctor/patient profile → access token + session cookie.
- /api/auth/logout [POST]
  • Clear the session cookie.
- /api/auth/check-user [POST]
  • Resolve role and profile for a user id.
- /api/auth/redirect [GET]
  • Bearer token → role, profile and dashboard path.
- /api/auth/register/doctor [POST]
  • Create identity + pending doctor profile in one transaction.
- /api/auth/register/patient [POST]
  • Create identity + patient profile (optionally requesting a doctor) in one transaction.
- /api/auth/reset-password [POST]
  • Email a recovery link without disclosing whether the address exists.
- /api/auth/reset-password/confirm [POST]
  • Redeem a recovery token and set the new password.
"""

from urllib.parse import urlencode

from flask import Blueprint, jsonify, session, current_app, g
from sqlalchemy.exc import IntegrityError

from ..models import db, Doctor, Patient, PasswordResetToken, AuditLog
from ..utils.auth_utils import (
    AuthError, authenticate_user, build_session, client_ip, create_auth_user,
    get_json_body, hash_password, token_required, user_agent
)
from ..utils.connection_service import connection_service
from ..utils.email_service import EmailDeliveryError, send_password_reset_email
from ..utils.rate_limit import rate_limited, LOGIN_RATE_LIMIT, REGISTRATION_RATE_LIMIT
from ..utils.role_resolution import resolve_user_role, describe_user
from ..utils.validators import (
    validate_email, validate_name, validate_password_strength, sanitize_input
)

auth_bp = Blueprint('auth', __name__)

USER_TYPES = ('doctor', 'patient')


def _validate_registration(data):
    """Shared email/password/name checks; returns (cleaned, error_message)."""
    email_validation = validate_email(data.get('email'))
    if not email_validation.is_valid:
        return None, email_validation.error_message

    password_validation = validate_password_strength(data.get('password'))
    if not password_validation.is_valid:
        return None, password_validation.error_message

    first_name = validate_name(data.get('first_name'), 'Il nome')
    if not first_name.is_valid:
        return None, first_name.error_message

    last_name = validate_name(data.get('last_name'), 'Il cognome')
    if not last_name.is_valid:
        return None, last_name.error_message

    return {
        'email': email_validation.sanitized_value,
        'password': data.get('password'),
        'first_name': first_name.sanitized_value,
        'last_name': last_name.sanitized_value,
    }, None


@auth_bp.route('/login', methods=['POST'])
@rate_limited(LOGIN_RATE_LIMIT)
def login():
    """Email/password sign-in for doctors and patients"""
    data = get_json_body()
    email = data.get('email')
    password = data.get('password')
    email = email.strip() if isinstance(email, str) else ''
    password = password if isinstance(password, str) else ''

    if not email or not password:
        return jsonify({'error': 'Email e password sono obbligatori'}), 400

    try:
        user = authenticate_user(email, password)
        if not user:
            return jsonify({'error': 'Credenziali di accesso non valide'}), 400

        role, profile = resolve_user_role(user.id)
        if not role:
            return jsonify({'error': 'Profilo utente non trovato'}), 404

        user.update_last_sign_in()
        session['user_id'] = user.id

        body = {
            'user': user.to_dict(),
            'role': role,
            'profile': profile.to_dict(),
            'session': build_session(user),
        }
        if role == 'doctor':
            body['requiresApproval'] = not profile.is_approved()
            body['approvalStatus'] = profile.status

        return jsonify(body)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Login error: {str(e)}")
        return jsonify({'error': 'Errore interno del server'}), 500


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Clear the dashboard session"""
    session.clear()
    return jsonify({'success': True, 'message': 'Logout effettuato con successo'})


@auth_bp.route('/check-user', methods=['POST'])
def check_user():
    """Resolve whether a user id belongs to a doctor or a patient"""
    data = get_json_body()
    user_id = data.get('userId')

    if not user_id:
        return jsonify({'error': 'User ID è obbligatorio'}), 400

    try:
        role, profile = resolve_user_role(user_id)
        if not role:
            return jsonify({'error': 'Profilo utente non trovato'}), 404
        return jsonify({'role': role, 'profile': profile.to_dict()})

    except Exception as e:
        current_app.logger.error(f"Error checking user: {str(e)}")
        return jsonify({'error': 'Errore interno del server'}), 500


@auth_bp.route('/redirect', methods=['GET'])
@token_required
def dashboard_redirect():
    """Where the dashboard entry point should send the signed-in user"""
    return jsonify(describe_user(g.current_user.id))


@auth_bp.route('/register/doctor', methods=['POST'])
@rate_limited(REGISTRATION_RATE_LIMIT)
def register_doctor():
    """Doctor self-registration; the account stays pending until an admin approves it"""
    data = get_json_body()
    required = ('email', 'password', 'first_name', 'last_name', 'order_number')
    if not all(data.get(field) for field in required):
        return jsonify({'error': 'Tutti i campi sono obbligatori'}), 400

    cleaned, error = _validate_registration(data)
    if error:
        return jsonify({'error': error}), 400

    order_number = sanitize_input(data.get('order_number'), 50)

    try:
        user = create_auth_user(cleaned['email'], cleaned['password'])
        doctor = Doctor(
            id=user.id,
            email=user.email,
            first_name=cleaned['first_name'],
            last_name=cleaned['last_name'],
            order_number=order_number,
            specialization=sanitize_input(data.get('specialization'), 120) or None,
            status='pending',
        )
        db.session.add(doctor)
        AuditLog.record('doctor_registered', user_id=user.id, ip_address=client_ip(),
                        user_agent=user_agent(), details={'order_number': order_number})
        db.session.commit()

    except AuthError as e:
        db.session.rollback()
        return jsonify({'error': e.message}), e.status_code

    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning(f"Doctor registration conflict: {str(e.orig)}")
        return jsonify({'error': "Email o numero d'ordine già registrati"}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Registration error: {str(e)}")
        return jsonify({'error': 'Errore durante la registrazione nel database'}), 500

    current_app.logger.info(f"Doctor registered: {doctor.id} (pending approval)")
    return jsonify({
        'message': 'Registrazione completata. In attesa di approvazione.',
        'user_id': doctor.id,
        'success': True,
    }), 201


@auth_bp.route('/register/patient', methods=['POST'])
@rate_limited(REGISTRATION_RATE_LIMIT)
def register_patient():
    """Patient self-registration, optionally requesting a doctor straight away"""
    data = get_json_body()
    required = ('email', 'password', 'first_name', 'last_name')
    if not all(data.get(field) for field in required):
        return jsonify({'error': 'Email, password, nome e cognome sono obbligatori'}), 400

    cleaned, error = _validate_registration(data)
    if error:
        return jsonify({'error': error}), 400

    try:
        user = create_auth_user(cleaned['email'], cleaned['password'])
        result = connection_service.register_patient(
            user.id,
            user.email,
            cleaned['first_name'],
            cleaned['last_name'],
            doctor_id=data.get('doctor_id') or None,
            ip_address=client_ip(),
            user_agent=user_agent(),
        )
        if not result.success:
            db.session.rollback()
            return jsonify({'error': result.error or 'Errore sconosciuto'}), 400

        db.session.commit()

    except AuthError as e:
        db.session.rollback()
        return jsonify({'error': e.message}), e.status_code

    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning(f"Patient registration conflict: {str(e.orig)}")
        return jsonify({'error': 'Email già registrata'}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Registration error: {str(e)}")
        return jsonify({'error': 'Errore durante la registrazione'}), 500

    return jsonify({
        'message': result.message,
        'user_id': user.id,
        'success': True,
    }), 201


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    """Send a password recovery link to a doctor or patient"""
    data = get_json_body()
    email = data.get('email')
    email = email.strip().lower() if isinstance(email, str) else ''
    user_type = data.get('userType')

    if not email or not user_type:
        return jsonify({'error': 'Email e tipo utente sono obbligatori'}), 400

    if user_type not in USER_TYPES:
        return jsonify({'error': 'Tipo utente non valido'}), 400

    model = Doctor if user_type == 'doctor' else Patient
    generic_response = {
        'success': True,
        'message': "Se l'email esiste nel nostro sistema, riceverai un link per reimpostare la password."
    }

    try:
        profile = model.query.filter_by(email=email).first()
        if not profile:
            # Don't reveal if user exists or not
            return jsonify(generic_response)

        reset_token = PasswordResetToken(
            profile.id,
            expires_in_seconds=current_app.config.get('PASSWORD_RESET_TOKEN_EXPIRES', 3600)
        )
        db.session.add(reset_token)
        db.session.commit()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Errore generazione link reset: {str(e)}")
        return jsonify({'error': 'Errore durante la generazione del link di reset'}), 500

    query = urlencode({'type': user_type, 'token': reset_token.token})
    reset_link = f"{current_app.config.get('APP_URL', '')}/reset-password?{query}"

    try:
        send_password_reset_email(profile.full_name, profile.email, reset_link, user_type)
    except EmailDeliveryError:
        return jsonify({'error': "Errore durante l'invio dell'email"}), 500

    current_app.logger.info(f"Password reset email sent to {profile.email}")
    return jsonify({
        'success': True,
        'message': 'Email di reset password inviata con successo. Controlla la tua casella di posta.'
    })


@auth_bp.route('/reset-password/confirm', methods=['POST'])
def confirm_reset_password():
    """Set a new password using a recovery token"""
    data = get_json_body()
    token = data.get('token')
    password = data.get('password')

    if not token or not password:
        return jsonify({'error': 'Token e password sono obbligatori'}), 400

    password_validation = validate_password_strength(password)
    if not password_validation.is_valid:
        return jsonify({'error': password_validation.error_message}), 400

    try:
        reset_token = PasswordResetToken.query.filter_by(token=token).first()
        if not reset_token or not reset_token.is_valid():
            return jsonify({'error': 'Link di reset non valido o scaduto'}), 400

        reset_token.user.password_hash = hash_password(password)
        reset_token.mark_used()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Password reset error: {str(e)}")
        return jsonify({'error': 'Errore interno del server'}), 500

    return jsonify({'success': True, 'message': 'Password aggiornata con successo'})

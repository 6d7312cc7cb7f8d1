"""
Authentication Utilities

FLOW OVERVIEW
- hash_password / verify_password: bcrypt password hashing.
- create_access_token / decode_access_token: HS256 JWTs carrying the user id in `sub`.
- create_auth_user / authenticate_user: identity rows in `users`.
- authenticate_request(): Bearer header → User, or a ready (response, status) error.
- token_required: decorator storing the authenticated user on `flask.g`.
- admin_required: decorator comparing the Bearer token with ADMIN_MASTER_PASSWORD.
- client_ip / user_agent / get_json_body: request helpers used by every route.
"""

import logging
import secrets
from datetime import datetime, timedelta
from functools import wraps

import bcrypt
import jwt
from flask import current_app, g, jsonify, request

from ..models import db, User

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when an identity cannot be created or verified"""

    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def hash_password(password):
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=current_app.config.get('BCRYPT_LOG_ROUNDS', 12))
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password, password_hash):
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_access_token(user, expires_in=None):
    """Generate a signed access token for a user"""
    expires_in = expires_in or current_app.config.get('JWT_ACCESS_TOKEN_EXPIRES', 3600)
    now = datetime.utcnow()
    payload = {
        'sub': user.id,
        'email': user.email,
        'iat': now,
        'exp': now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm='HS256')


def decode_access_token(token):
    """Verify and decode an access token; None when invalid or expired"""
    try:
        return jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def build_session(user):
    """Session payload returned to clients after sign-in"""
    expires_in = current_app.config.get('JWT_ACCESS_TOKEN_EXPIRES', 3600)
    return {
        'access_token': create_access_token(user, expires_in),
        'token_type': 'bearer',
        'expires_in': expires_in,
    }


def create_auth_user(email, password):
    """
    Add a new identity to the current session without committing.

    The caller inserts the matching doctor/patient profile and commits both
    together, so a failed profile insert never leaves an orphan identity.

    Raises:
        AuthError: if the email is already registered
    """
    if User.query.filter_by(email=email.strip().lower()).first():
        raise AuthError('Un utente con questa email è già registrato')

    user = User(email=email, password_hash=hash_password(password))
    db.session.add(user)
    db.session.flush()
    return user


def authenticate_user(email, password):
    """Return the user for valid credentials, else None"""
    user = User.query.filter_by(email=(email or '').strip().lower()).first()
    if user and verify_password(password, user.password_hash):
        return user
    return None


def get_bearer_token():
    """Extract the token from an `Authorization: Bearer <token>` header"""
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    token = auth_header[len('Bearer '):].strip()
    return token or None


def authenticate_request(invalid_message='Token non valido'):
    """
    Resolve the user behind the request's Bearer token.

    Returns:
        Tuple of (user, error_response); exactly one of them is None.
    """
    token = get_bearer_token()
    if not token:
        return None, (jsonify({'error': 'Token di autorizzazione richiesto'}), 401)

    payload = decode_access_token(token)
    user = db.session.get(User, payload.get('sub')) if payload and payload.get('sub') else None
    if not user:
        logger.info("Rejected bearer token from %s", client_ip())
        return None, (jsonify({'error': invalid_message}), 401)

    return user, None


def authorize_user(expected_user_id, forbidden_message='Non autorizzato',
                   invalid_message='Token non valido'):
    """
    Authenticate the request and require the token owner to be `expected_user_id`.

    Returns:
        Tuple of (user, error_response); 401 for a missing/invalid token,
        403 when the token belongs to someone else.
    """
    user, error = authenticate_request(invalid_message)
    if error:
        return None, error
    if user.id != expected_user_id:
        current_app.logger.warning(f"User {user.id} tried to act as {expected_user_id}")
        return None, (jsonify({'error': forbidden_message}), 403)
    return user, None


def token_required(f):
    """Decorator to require a valid user access token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user, error = authenticate_request()
        if error:
            return error
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def verify_admin_token(token):
    """Check a Bearer token against the configured admin password"""
    admin_password = current_app.config.get('ADMIN_MASTER_PASSWORD')
    if not admin_password or not token:
        return False
    return secrets.compare_digest(token.encode('utf-8'), admin_password.encode('utf-8'))


def admin_required(f):
    """Decorator to require the admin master password as Bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not request.headers.get('Authorization', '').startswith('Bearer '):
            return jsonify({'error': 'Token mancante'}), 401

        if not verify_admin_token(get_bearer_token()):
            current_app.logger.warning(f"Invalid admin token from {client_ip()}")
            return jsonify({'error': 'Token non valido'}), 401

        return f(*args, **kwargs)
    return decorated_function


def client_ip():
    """Best-effort client address (first X-Forwarded-For hop)"""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or request.remote_addr or 'unknown'


def user_agent():
    return request.headers.get('User-Agent') or 'unknown'


def get_json_body():
    """Parse the request body as a JSON object; {} when absent or malformed"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

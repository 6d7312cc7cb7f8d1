"""
User-type resolution and dashboard redirect.

A user id resolves to 'doctor' when a doctors row exists, else to 'patient'
when a patients row exists, else to no role. The dashboard entry point then
sends each role to its own area; unapproved doctors wait on the pending page.
"""

from typing import Any, Dict, Optional, Tuple

from ..models import db, Doctor, Patient

LOGIN_PATH = '/login'
GENERIC_DASHBOARD_PATH = '/dashboard'
DOCTOR_DASHBOARD_PATH = '/dashboard/doctor'
PENDING_DASHBOARD_PATH = '/dashboard/pending'
PATIENT_DASHBOARD_PATH = '/dashboard/patient'


def resolve_user_role(user_id) -> Tuple[Optional[str], Optional[Any]]:
    """Return (role, profile) for a user id; (None, None) when neither table has it."""
    if not user_id:
        return None, None

    doctor = db.session.get(Doctor, user_id)
    if doctor:
        return 'doctor', doctor

    patient = db.session.get(Patient, user_id)
    if patient:
        return 'patient', patient

    return None, None


def redirect_path_for(role: Optional[str], profile=None, authenticated: bool = True) -> str:
    """Map a resolved role to the dashboard path the client should open."""
    if not authenticated:
        return LOGIN_PATH
    if role == 'doctor':
        status = getattr(profile, 'status', None)
        return DOCTOR_DASHBOARD_PATH if status == 'approved' else PENDING_DASHBOARD_PATH
    if role == 'patient':
        return PATIENT_DASHBOARD_PATH
    return GENERIC_DASHBOARD_PATH


def describe_user(user_id) -> Dict[str, Any]:
    """Role, serialized profile and redirect target for an authenticated user."""
    role, profile = resolve_user_role(user_id)
    return {
        'role': role,
        'profile': profile.to_dict() if profile else None,
        'redirectTo': redirect_path_for(role, profile),
    }

"""
Main Routes

FLOW OVERVIEW
- /health [GET]
  • JSON health check.
- /metrics [GET]
  • Prometheus text exposition.
- /dashboard [GET]
  • Session gate; redirect to the dashboard matching the user's role.
"""

from datetime import datetime

from flask import Blueprint, Response, jsonify, redirect, session

from ..utils.prom_metrics import metrics_latest, CONTENT_TYPE_LATEST
from ..utils.role_resolution import resolve_user_role, redirect_path_for

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({'status': 'healthy', 'timestamp': datetime.utcnow().isoformat()})


@main_bp.route('/metrics')
def metrics():
    """Prometheus scrape endpoint"""
    return Response(metrics_latest(), mimetype=CONTENT_TYPE_LATEST)


@main_bp.route('/dashboard')
def dashboard():
    """Send the signed-in user to their own dashboard"""
    user_id = session.get('user_id')
    if not user_id:
        return redirect(redirect_path_for(None, authenticated=False))

    role, profile = resolve_user_role(user_id)
    if not role:
        # Stale session; the generic dashboard path would loop back here
        session.pop('user_id', None)
        return redirect(redirect_path_for(None, authenticated=False))

    return redirect(redirect_path_for(role, profile))

"""
Audit and Rate Limit Models

- AuditLog: append-only record of security-relevant actions (registrations,
  approvals, connection changes) with the caller's IP and user agent.
- RateLimitEvent: one row per rate-limited request, counted inside a
  sliding window by `medhubb.utils.rate_limit`.
"""

from datetime import datetime
from .database import db


class AuditLog(db.Model):
    """Security audit trail entry"""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.String(36), index=True)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(512))
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<AuditLog {self.action} user={self.user_id}>'

    @classmethod
    def record(cls, action, user_id=None, ip_address=None, user_agent=None, details=None):
        """Add an entry to the current session; the caller commits."""
        entry = cls(
            action=action,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=(user_agent or '')[:512] or None,
            details=details,
        )
        db.session.add(entry)
        return entry


class RateLimitEvent(db.Model):
    """A single request counted against a rate limit window"""
    __tablename__ = 'rate_limit_events'

    id = db.Column(db.Integer, primary_key=True)
    identifier = db.Column(db.String(255), nullable=False)
    action_type = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index('ix_rate_limit_lookup', 'identifier', 'action_type', 'created_at'),
    )

"""
Rate Limiting

FLOW OVERVIEW
- RateLimitConfig(max_requests, window_minutes)
  • Presets: REGISTRATION (3/60min), LOGIN (10/15min), ADMIN (20/5min).
- RateLimiter.check(identifier, action_type, config)
  • Count RateLimitEvent rows inside the window; record this request when allowed.
- rate_limited(config)
  • Route decorator: identifier = client IP, action = "METHOD:path".
  • 429 with Retry-After / X-RateLimit-* headers when exhausted.
  • Any limiter error lets the request through (fail open).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import wraps

from flask import current_app, jsonify, request

from ..models import db, RateLimitEvent
from .auth_utils import client_ip


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_minutes: int

    @property
    def window_seconds(self):
        return self.window_minutes * 60


REGISTRATION_RATE_LIMIT = RateLimitConfig(max_requests=3, window_minutes=60)
LOGIN_RATE_LIMIT = RateLimitConfig(max_requests=10, window_minutes=15)
ADMIN_RATE_LIMIT = RateLimitConfig(max_requests=20, window_minutes=5)


class RateLimiter:
    """Database-backed sliding window counter."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def check(self, identifier: str, action_type: str, config: RateLimitConfig) -> bool:
        """Return True and record the request if the caller is under the limit."""
        now = datetime.utcnow()
        window_start = now - timedelta(minutes=config.window_minutes)

        # Drop events that can no longer count against any window for this action
        RateLimitEvent.query.filter(
            RateLimitEvent.identifier == identifier,
            RateLimitEvent.action_type == action_type,
            RateLimitEvent.created_at < window_start,
        ).delete(synchronize_session=False)

        count = RateLimitEvent.query.filter(
            RateLimitEvent.identifier == identifier,
            RateLimitEvent.action_type == action_type,
            RateLimitEvent.created_at >= window_start,
        ).count()

        if count >= config.max_requests:
            db.session.commit()
            self.logger.warning(f"Rate limit exceeded for {identifier} on {action_type}: {count} requests")
            return False

        db.session.add(RateLimitEvent(identifier=identifier, action_type=action_type, created_at=now))
        db.session.commit()
        return True


def rate_limit_exceeded_response(config: RateLimitConfig):
    response = jsonify({
        'error': 'Troppi tentativi. Riprova tra qualche minuto.',
        'retryAfter': config.window_seconds,
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(config.window_seconds)
    response.headers['X-RateLimit-Limit'] = str(config.max_requests)
    response.headers['X-RateLimit-Window'] = str(config.window_seconds)
    return response


def rate_limited(config: RateLimitConfig):
    """Decorator applying a rate limit to a route."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_app.config.get('RATELIMIT_ENABLED', True):
                return f(*args, **kwargs)

            action_type = f"{request.method}:{request.path}"
            try:
                allowed = rate_limiter.check(client_ip(), action_type, config)
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(f"Rate limit check error: {str(e)}")
                return f(*args, **kwargs)

            if not allowed:
                return rate_limit_exceeded_response(config)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# Global instance
rate_limiter = RateLimiter()

"""
Tests for the database-backed rate limiter.
"""

from datetime import datetime, timedelta

import pytest
from medhubb.models import db, RateLimitEvent
from medhubb.utils.rate_limit import (
    RateLimitConfig, RateLimiter, rate_limiter,
    REGISTRATION_RATE_LIMIT, LOGIN_RATE_LIMIT, ADMIN_RATE_LIMIT
)


@pytest.fixture
def limited_app(app_factory):
    """App with rate limiting switched on and its own database."""
    app = app_factory(RATELIMIT_ENABLED=True)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def limited_client(limited_app):
    return limited_app.test_client()


class TestPresets:
    """Configured limits"""

    def test_preset_values(self):
        assert (REGISTRATION_RATE_LIMIT.max_requests, REGISTRATION_RATE_LIMIT.window_minutes) == (3, 60)
        assert (LOGIN_RATE_LIMIT.max_requests, LOGIN_RATE_LIMIT.window_minutes) == (10, 15)
        assert (ADMIN_RATE_LIMIT.max_requests, ADMIN_RATE_LIMIT.window_minutes) == (20, 5)
        assert ADMIN_RATE_LIMIT.window_seconds == 300


class TestRateLimiter:
    """RateLimiter.check counts events inside the window"""

    def test_allows_up_to_limit(self, db_session):
        limiter = RateLimiter()
        config = RateLimitConfig(max_requests=2, window_minutes=1)
        assert limiter.check('1.2.3.4', 'POST:/x', config)
        assert limiter.check('1.2.3.4', 'POST:/x', config)
        assert not limiter.check('1.2.3.4', 'POST:/x', config)
        assert RateLimitEvent.query.count() == 2

    def test_identifiers_and_actions_are_independent(self, db_session):
        config = RateLimitConfig(max_requests=1, window_minutes=1)
        assert rate_limiter.check('1.1.1.1', 'POST:/a', config)
        assert rate_limiter.check('2.2.2.2', 'POST:/a', config)
        assert rate_limiter.check('1.1.1.1', 'POST:/b', config)
        assert not rate_limiter.check('1.1.1.1', 'POST:/a', config)

    def test_old_events_do_not_count(self, db_session):
        config = RateLimitConfig(max_requests=1, window_minutes=5)
        db_session.add(RateLimitEvent(identifier='9.9.9.9', action_type='POST:/a',
                                      created_at=datetime.utcnow() - timedelta(minutes=10)))
        db_session.commit()

        assert rate_limiter.check('9.9.9.9', 'POST:/a', config)
        # Expired event was pruned, the new one recorded
        assert RateLimitEvent.query.count() == 1


class TestRateLimitedRoutes:
    """rate_limited decorator on real endpoints"""

    def test_registration_limit(self, limited_client):
        payload = {'email': 'x@example.com'}
        for _ in range(3):
            response = limited_client.post('/api/auth/register/patient', json=payload)
            assert response.status_code == 400

        response = limited_client.post('/api/auth/register/patient', json=payload)
        assert response.status_code == 429
        data = response.get_json()
        assert data['error'] == 'Troppi tentativi. Riprova tra qualche minuto.'
        assert data['retryAfter'] == 3600
        assert response.headers['Retry-After'] == '3600'
        assert response.headers['X-RateLimit-Limit'] == '3'
        assert response.headers['X-RateLimit-Window'] == '3600'

    def test_login_limit(self, limited_client):
        for _ in range(10):
            assert limited_client.post('/api/auth/login', json={}).status_code == 400
        assert limited_client.post('/api/auth/login', json={}).status_code == 429

    def test_limit_is_per_client_address(self, limited_client):
        for _ in range(3):
            limited_client.post('/api/auth/register/doctor', json={},
                                headers={'X-Forwarded-For': '10.0.0.1'})
        blocked = limited_client.post('/api/auth/register/doctor', json={},
                                      headers={'X-Forwarded-For': '10.0.0.1'})
        other = limited_client.post('/api/auth/register/doctor', json={},
                                    headers={'X-Forwarded-For': '10.0.0.2, 10.0.0.1'})
        assert blocked.status_code == 429
        assert other.status_code == 400

    def test_fails_open(self, limited_client, monkeypatch):
        def broken_check(*args, **kwargs):
            raise RuntimeError('database unavailable')

        monkeypatch.setattr(rate_limiter, 'check', broken_check)
        for _ in range(5):
            response = limited_client.post('/api/auth/register/patient', json={})
            assert response.status_code == 400

    def test_disabled_by_config(self, client, db_session):
        for _ in range(5):
            assert client.post('/api/auth/register/patient', json={}).status_code == 400
        assert RateLimitEvent.query.count() == 0

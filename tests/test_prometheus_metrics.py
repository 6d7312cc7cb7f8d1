from medhubb.utils.prom_metrics import REQUEST_COUNTER, observe_request


def test_metrics_endpoint_exposes_prometheus(app):
    with app.test_client() as client:
        client.get('/health')
        resp = client.get('/metrics')
        assert resp.status_code == 200
        body = resp.data.decode('utf-8')
        assert 'medhubb_http_requests_total' in body
        assert 'medhubb_http_request_latency_seconds' in body
        assert resp.mimetype.startswith('text/plain')


def test_requests_are_labelled_by_url_rule(app, db_session):
    client = app.test_client()
    before = REQUEST_COUNTER.labels(endpoint='/api/auth/check-user', status='400')._value.get()
    client.post('/api/auth/check-user', json={})
    after = REQUEST_COUNTER.labels(endpoint='/api/auth/check-user', status='400')._value.get()
    assert after == before + 1


def test_unmatched_paths_share_one_label(app):
    client = app.test_client()
    before = REQUEST_COUNTER.labels(endpoint='unmatched', status='404')._value.get()
    client.get('/does-not-exist/123')
    client.get('/also-missing')
    after = REQUEST_COUNTER.labels(endpoint='unmatched', status='404')._value.get()
    assert after == before + 2


def test_observe_request_direct():
    before = REQUEST_COUNTER.labels(endpoint='/custom', status='200')._value.get()
    observe_request('/custom', 200, 0.01)
    assert REQUEST_COUNTER.labels(endpoint='/custom', status='200')._value.get() == before + 1


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_json_error_handlers(client):
    response = client.get('/nowhere')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Risorsa non trovata'}

    response = client.get('/api/auth/login')
    assert response.status_code == 405
    assert response.get_json() == {'error': 'Metodo non consentito'}

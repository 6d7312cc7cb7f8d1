"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- register_request_metrics(app): before/after hooks timing every request
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
import time

from flask import g, request
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    'medhubb_http_requests_total', 'Total HTTP requests', ['endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'medhubb_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)


def observe_request(endpoint: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def register_request_metrics(app) -> None:
    """Time each request and record it under its URL rule (not the raw path)."""

    @app.before_request
    def _start_timer():
        g._metrics_start = time.perf_counter()

    @app.after_request
    def _record(response):
        start = g.pop('_metrics_start', None)
        if start is not None:
            endpoint = request.url_rule.rule if request.url_rule else 'unmatched'
            observe_request(endpoint, response.status_code, time.perf_counter() - start)
        return response


def metrics_latest() -> bytes:
    if os.getenv('PROMETHEUS_MULTIPROC_DIR'):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest()


__all__ = ['observe_request', 'register_request_metrics', 'metrics_latest', 'CONTENT_TYPE_LATEST']

"""Prometheus metrics: request counters and order mutation failures, served at /metrics."""
import os
import time
from flask import Blueprint, Response, request, g
from prometheus_client import (
    Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST,
    multiprocess, REGISTRY
)

metrics_bp = Blueprint('metrics', __name__)

# gunicorn workers share samples through PROMETHEUS_MULTIPROC_DIR
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _metric_registry = None
else:
    registry = _metric_registry = REGISTRY

http_requests_total = Counter(
    'erpcompras_http_requests_total',
    'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'erpcompras_http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

http_requests_in_flight = Gauge(
    'erpcompras_http_requests_in_flight',
    'Requests being served',
    registry=_metric_registry
)

order_mutation_failures_total = Counter(
    'erpcompras_order_mutation_failures_total',
    'Order and line mutations answered with an error status',
    ['endpoint', 'http_status'],
    registry=_metric_registry
)

MUTATING_METHODS = frozenset({'POST', 'PUT', 'DELETE'})
ORDER_BLUEPRINTS = frozenset({'orders', 'lines'})


def _is_order_mutation(method, endpoint):
    return method in MUTATING_METHODS and endpoint.split('.')[0] in ORDER_BLUEPRINTS


def setup_metrics_instrumentation(app):
    """Record latency, status and order mutation failures for every request."""

    @app.before_request
    def start_request_timer():
        g.request_started_at = time.time()
        http_requests_in_flight.inc()

    @app.after_request
    def record_request_metrics(response):
        started_at = g.pop('request_started_at', None)
        if started_at is None:
            return response

        try:
            endpoint = request.endpoint or 'unknown'
            status = response.status_code

            http_request_duration_seconds.labels(request.method, endpoint).observe(time.time() - started_at)
            http_requests_total.labels(request.method, endpoint, status).inc()
            if status >= 400 and _is_order_mutation(request.method, endpoint):
                order_mutation_failures_total.labels(endpoint, status).inc()
        except Exception as e:
            app.logger.warning(f"Failed to record metrics: {e}")
        finally:
            http_requests_in_flight.dec()

        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)

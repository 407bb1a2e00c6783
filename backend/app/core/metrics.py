"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Total registration attempts',
    ['outcome']  # success, duplicate, at_capacity, not_found, invalid, rate_limited, error
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Registration request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

ticket_regenerations = Counter(
    'ticket_regenerations_total',
    'Ticket numbers regenerated after a uniqueness violation'
)

# Cancellation metrics
cancellation_attempts = Counter(
    'cancellation_attempts_total',
    'Total cancellation attempts',
    ['outcome']  # success, not_found, already_cancelled, inconsistent, error
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/invalidate, hit/miss/ok
)

# Rate limiting metrics
rate_limit_decisions = Counter(
    'rate_limit_decisions_total',
    'Rate limiter decisions',
    ['policy', 'result']  # ip/email/cancel, allowed/rejected
)

# Notification metrics
notification_outcomes = Counter(
    'notification_outcomes_total',
    'Notification send outcomes',
    ['kind', 'result']  # sent, failed, timeout
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration(outcome: str):
    registration_attempts.labels(outcome=outcome).inc()


def record_cancellation(outcome: str):
    cancellation_attempts.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache lookup."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def record_cache_invalidation():
    cache_operations.labels(operation="invalidate", result="ok").inc()


def record_rate_limit(policy: str, allowed: bool):
    result = "allowed" if allowed else "rejected"
    rate_limit_decisions.labels(policy=policy, result=result).inc()


def record_notification(kind: str, result: str):
    notification_outcomes.labels(kind=kind, result=result).inc()

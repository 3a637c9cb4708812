"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, no_seats, payment_failed, rejected, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency (payment call included)',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 1.5, 2.5, 5.0]
)

cancellations = Counter(
    'booking_cancellations_total',
    'Booking cancellation attempts',
    ['status']  # success, rejected
)

# Payment metrics
payment_operations = Counter(
    'payment_operations_total',
    'Mock payment gateway calls',
    ['operation', 'result']  # charge/refund/void, success/failure
)

# Refund worker metrics
refund_jobs = Counter(
    'refund_jobs_total',
    'Refund bookkeeping jobs',
    ['result']  # enqueued, completed, skipped, retried, failed, dropped
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, no_seats, payment_failed, rejected, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(status: str):
    cancellations.labels(status=status).inc()


def record_payment(operation: str, success: bool):
    result = "success" if success else "failure"
    payment_operations.labels(operation=operation, result=result).inc()


def record_refund_job(result: str):
    refund_jobs.labels(result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()

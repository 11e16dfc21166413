"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, insufficient_capacity, rejected, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency (lock wait included)',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

seats_booked = Counter(
    'seats_booked_total',
    'Seats admitted into Reserved state'
)

# Admission control metrics
section_lock_wait = Histogram(
    'section_lock_wait_seconds',
    'Time spent waiting for a section lock',
    ['backend'],
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

section_lock_timeouts = Counter(
    'section_lock_timeouts_total',
    'Section lock acquisitions that exceeded BOOKING_LOCK_TIMEOUT',
    ['backend']
)

redis_lock_fallbacks = Counter(
    'redis_lock_fallbacks_total',
    'Redis lock failures that fell back to the in-process lock'
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

redis_circuit_breaker_open = Gauge(
    'redis_circuit_breaker_open',
    'Redis circuit breaker state (1=open, 0=closed)'
)

# Lifecycle metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transitions',
    ['from_status', 'to_status', 'result']  # result: applied, rejected
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


# Convenience functions for instrumentation
def record_booking_attempt(status: str, seats: int = 0):
    """Record booking attempt. Status: success, insufficient_capacity, rejected, error"""
    booking_attempts.labels(status=status).inc()
    if status == "success" and seats:
        seats_booked.inc(seats)


def record_transition(from_status: str, to_status: str, applied: bool):
    result = "applied" if applied else "rejected"
    booking_transitions.labels(from_status=from_status, to_status=to_status, result=result).inc()

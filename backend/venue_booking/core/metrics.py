"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Hold metrics
hold_attempts = Counter(
    'hold_attempts_total',
    'Total hold creation attempts',
    ['result']  # created, conflict
)

hold_releases = Counter(
    'hold_releases_total',
    'Hold release calls',
    ['result']  # released, noop
)

holds_expired = Counter(
    'holds_expired_total',
    'Holds marked expired by lazy checks or the sweeper'
)

# Finalize metrics
finalize_attempts = Counter(
    'finalize_attempts_total',
    'Booking finalization attempts',
    ['kind', 'result']  # kind: karaoke, tickets; result: success, hold_expired, capacity, payment_failed, error
)

finalize_latency = Histogram(
    'finalize_latency_seconds',
    'Booking finalization latency',
    ['kind'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

capacity_rejections = Counter(
    'capacity_rejections_total',
    'Ticket purchases rejected because the root was full'
)

payment_refunds = Counter(
    'payment_refunds_total',
    'Compensating refunds issued after a charge could not be kept',
    ['result']  # refunded, failed
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_hold_attempt(created: bool):
    result = "created" if created else "conflict"
    hold_attempts.labels(result=result).inc()


def record_hold_release(released: bool):
    hold_releases.labels(result="released" if released else "noop").inc()


def record_finalize(kind: str, result: str):
    """Record finalize outcome. Kind: karaoke, tickets"""
    finalize_attempts.labels(kind=kind, result=result).inc()


def record_refund(ok: bool):
    payment_refunds.labels(result="refunded" if ok else "failed").inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()

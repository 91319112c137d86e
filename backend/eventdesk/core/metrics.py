"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

registrations = Counter(
    'participant_registrations_total',
    'Participant registration attempts',
    ['result']  # created, rejected
)

scan_attempts = Counter(
    'checkin_scans_total',
    'Check-in scans by outcome',
    ['outcome']  # recorded, already_checked_in, not_found, ineligible
)

scan_latency = Histogram(
    'checkin_scan_latency_seconds',
    'Scan handling latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

assignment_attempts = Counter(
    'capacity_assignments_total',
    'Seat and vehicle assignment batches',
    ['resource', 'result']  # seat/vehicle; assigned, capacity_exceeded, conflict, noop
)

optimistic_retries = Counter(
    'optimistic_lock_retries_total',
    'Retries caused by concurrent modification of a capacity row',
    ['resource']
)

notification_deliveries = Counter(
    'notification_deliveries_total',
    'Notification delivery attempts',
    ['channel', 'result']  # email/sms; sent, skipped, failed
)

cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

request_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency',
    ['method'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_scan(outcome: str):
    """Outcome: recorded, already_checked_in, not_found, ineligible"""
    scan_attempts.labels(outcome=outcome).inc()


def record_assignment(resource: str, result: str):
    assignment_attempts.labels(resource=resource, result=result).inc()


def record_retry(resource: str):
    optimistic_retries.labels(resource=resource).inc()


def record_notification(channel: str, result: str):
    notification_deliveries.labels(channel=channel, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()

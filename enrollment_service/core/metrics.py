"""Application metrics using the Prometheus client library.

All metrics are defined here so the inventory lives in one place.
Other modules import a metric and increment/observe it where the
behavior happens.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Data operation metrics (populated by the OperationExecutor)
# ---------------------------------------------------------------------------

OPERATION_COUNT = Counter(
    "data_operations_total",
    "Executed data operations by type and outcome",
    ["operation_type", "outcome"],  # success|validation_error|operation_error
)

OPERATION_DURATION = Histogram(
    "data_operation_duration_seconds",
    "Wall time of one data operation including validation",
    ["operation_type"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

RETRYABLE_FAILURES = Counter(
    "data_operation_retryable_failures_total",
    "Failed operations classified as safe to retry",
    ["operation_type"],
)

# ---------------------------------------------------------------------------
# Domain events
# ---------------------------------------------------------------------------

EVENTS_EMITTED = Counter(
    "domain_events_emitted_total",
    "Domain events published to subscribers",
    ["event_type"],
)

EVENT_HANDLER_FAILURES = Counter(
    "event_handler_failures_total",
    "Subscriber callbacks that raised while handling an event",
    ["event_type"],
)

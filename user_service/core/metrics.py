"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures.  Other modules import the metric they own and
increment/observe it at the point of action.
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
# User workflow metrics
# ---------------------------------------------------------------------------

USERS_CREATED = Counter(
    "users_created_total",
    "Users successfully created and persisted",
)

USER_CREATE_FAILURES = Counter(
    "user_create_failures_total",
    "User creation attempts that failed, by reason",
    ["reason"],  # invalid_email|duplicate|infrastructure|publish
)

# ---------------------------------------------------------------------------
# Event channel metrics
# ---------------------------------------------------------------------------

EVENTS_PUBLISHED = Counter(
    "events_published_total",
    "Domain events handed to the event channel, by result",
    ["routing_key", "result"],  # result: ok|failed
)

EVENT_QUEUE_DEPTH = Gauge(
    "event_queue_depth",
    "Number of events waiting to be consumed",
    ["routing_key"],
)

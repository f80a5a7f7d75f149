"""Prometheus metrics for both services.

Every metric is defined here so there is one inventory of what the
services measure.  Other modules import the metric they own and
increment or observe it at the point of action.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
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
    # The enrolled-courses view fans out several store reads per course,
    # so the upper buckets stretch to the per-course fetch timeout.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------

STORE_OPERATIONS = Counter(
    "store_operations_total",
    "Document store calls by operation and outcome",
    ["operation", "outcome"],  # outcome: ok|timeout|error
)

# ---------------------------------------------------------------------------
# Enrollment / progress
# ---------------------------------------------------------------------------

ENROLLMENTS = Counter(
    "enrollments_total",
    "Enrollment attempts by result",
    ["result"],  # "created" or "conflict"
)

STUDENT_COUNT_FAILURES = Counter(
    "student_count_increment_failures_total",
    "Best-effort student counter increments that failed and were dropped",
)

PROGRESS_UPDATES = Counter(
    "progress_updates_total",
    "Progress records written through partial updates",
)

VIEW_FALLBACKS = Counter(
    "enrolled_view_fallbacks_total",
    "Enrolled-course sub-fetches that timed out or failed and used defaults",
    ["field"],  # "course", "progress" or "last_accessed"
)

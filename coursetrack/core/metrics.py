"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures.  Other modules import a metric and increment or observe
it at the point of action.

Counters only go up (requests served, progress writes).  Gauges go up and
down (in-flight requests).  Histograms bucket observations so Prometheus
can compute percentiles (request latency).
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
    # Progress samples and cache hits sit in the lowest buckets; full
    # report generation walks every student's progress and lands higher.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

PROGRESS_WRITES = Counter(
    "progress_writes_total",
    "Progress tracker writes by kind and result",
    ["kind", "result"],  # kind: sample|ended, result: ok|error
)

ASSIGNMENT_WRITES = Counter(
    "assignment_writes_total",
    "Assignment record writes per fan-out target",
    ["result"],  # created|failed|replaced
)

BULK_USER_ROWS = Counter(
    "bulk_user_rows_total",
    "Rows processed by bulk user creation",
    ["result"],  # success|error
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Report cache operations by kind",
    ["operation"],  # hit|miss|error|invalidate
)

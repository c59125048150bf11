"""Application metrics using the Prometheus client library.

Every metric the service exports is defined here so there is a single
inventory.  Other modules import the metric they own and
increment/observe it at the point of action.

Prometheus pulls these from GET /metrics.
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
    # Progress reports are single-row upserts: almost everything should
    # land under 50ms.  The tail buckets catch pool exhaustion.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Watch-progress metrics
# ---------------------------------------------------------------------------

PROGRESS_UPSERTS = Counter(
    "watch_progress_upserts_total",
    "Progress reports applied to the store",
    ["media_type", "completed"],  # completed: "true" | "false"
)

STORAGE_ERRORS = Counter(
    "watch_progress_storage_errors_total",
    "Progress store operations that failed in the storage layer",
    ["operation"],  # "upsert" | "get" | "query" | "ping"
)

CATALOG_LOOKUPS = Counter(
    "catalog_lookups_total",
    "Catalog snapshot lookups by result",
    ["result"],  # "hit" | "miss" | "error"
)

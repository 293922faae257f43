"""Prometheus metric inventory for tenant-service.

Every metric the service exports is declared here, in one place.  Other
modules import the metric they own and increment/observe it at the point
of action:

  - HTTP traffic (count, latency histogram, in-flight gauge) is recorded
    by MetricsMiddleware for every request except /metrics itself.
  - Organization creation and tenant guard decisions are recorded by
    org_service and the tenant guard dependency.

Prometheus scrapes GET /metrics (see app/api/metrics_endpoint.py).  Rates
and percentiles are computed server-side from these raw series, e.g.

  rate(tenant_guard_decisions_total{result="forbidden"}[5m])
  histogram_quantile(0.95, rate(http_request_duration_seconds_bucket[5m]))
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
    # 5ms health checks .. 500ms p95 target .. 1s+ means something is wrong
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Tenancy metrics
# ---------------------------------------------------------------------------

ORGANIZATIONS_CREATED = Counter(
    "organizations_created_total",
    "Organizations created (each with its OWNER membership)",
)

TENANT_GUARD_DECISIONS = Counter(
    "tenant_guard_decisions_total",
    "Tenant guard outcomes for requests carrying an org context",
    # allowed | unauthenticated | invalid_subject | missing_header | malformed
    # | forbidden
    ["result"],
)

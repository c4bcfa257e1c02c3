"""Prometheus metrics for docshare.

All series live on the default ``prometheus_client`` registry, which
also carries the process collectors. HTTP series are fed by
``AccessLogMiddleware``; document series by the document service, the
shared index builder and the access gate.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

_LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
_UPLOAD_SIZE_BUCKETS = (1e3, 1e4, 1e5, 1e6, 5e6, 1e7, 2.5e7, 5e7)

# ── HTTP ──────────────────────────────────────────────────────────────

HTTP_REQUESTS_TOTAL = Counter(
    "http_server_requests_total",
    "HTTP requests by method, route template and status code.",
    labelnames=("method", "path", "status"),
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_server_request_duration_seconds",
    "HTTP request latency by method and route template.",
    labelnames=("method", "path"),
    buckets=_LATENCY_BUCKETS,
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "http_server_requests_in_flight",
    "HTTP requests currently being served.",
)

# ── Documents ─────────────────────────────────────────────────────────

DOCUMENT_MUTATIONS_TOTAL = Counter(
    "docshare_document_mutations_total",
    "Document record mutations by operation (create, rename, delete) and outcome.",
    labelnames=("operation", "outcome"),
)

UPLOAD_SIZE_BYTES = Histogram(
    "docshare_upload_size_bytes",
    "Size of stored uploads.",
    buckets=_UPLOAD_SIZE_BUCKETS,
)

SHARED_INDEX_REBUILDS_TOTAL = Counter(
    "docshare_shared_index_rebuilds_total",
    "Completed full rebuilds of the shared index.",
)

SHARED_INDEX_ENTRIES = Gauge(
    "docshare_shared_index_entries",
    "Entries in the most recently written shared index.",
)

ACCESS_CHECKS_TOTAL = Counter(
    "docshare_access_checks_total",
    "Access gate outcomes: grant, deny, not_found, misconfigured.",
    labelnames=("result",),
)


def metrics_text() -> tuple[bytes, str]:
    """Exposition body and its content type."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST

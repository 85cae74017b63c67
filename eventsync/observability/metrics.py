"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

HTTP_REQUESTS_TOTAL = Counter(
    "eventsync_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
HTTP_REQUEST_LATENCY_SEC = Histogram(
    "eventsync_http_request_latency_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
AUTH_REJECTIONS_TOTAL = Counter(
    "eventsync_auth_rejections_total",
    "Requests and connection upgrades refused by the access gate",
    ["channel", "reason"],
)
ACTIVE_CONNECTIONS = Gauge(
    "eventsync_active_connections",
    "Currently registered realtime connections",
)
EVENTS_PUBLISHED_TOTAL = Counter(
    "eventsync_events_published_total",
    "Task change events accepted by the broadcast hub",
    ["type"],
)
DELIVERIES_TOTAL = Counter(
    "eventsync_deliveries_total",
    "Per-connection message deliveries by outcome",
    ["outcome"],
)
DELIVERY_LATENCY_SEC = Histogram(
    "eventsync_delivery_latency_seconds",
    "Time spent writing one message to one connection",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


def record_auth_rejection(channel: str, reason: str) -> None:
    AUTH_REJECTIONS_TOTAL.labels(channel=str(channel), reason=str(reason)).inc()


def record_delivery(outcome: str) -> None:
    DELIVERIES_TOTAL.labels(outcome=str(outcome)).inc()

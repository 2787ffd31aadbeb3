"""Prometheus metrics definitions for Larder."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "larder_http_requests_total",
    "Total number of HTTP requests processed by the Larder API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "larder_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Larder API",
    ["method", "path"],
)

RECOMMENDATION_RUNS = Counter(
    "larder_recommendation_runs_total",
    "Number of recipe recommendation rankings computed",
)

SHOPPING_ITEMS = Counter(
    "larder_shopping_items_generated_total",
    "Number of shopping items derived from meal-plan demand",
)

SYNC_DECISIONS = Counter(
    "larder_sync_decisions_total",
    "Sync conflict decisions by winning side",
    ["winner"],
)

RETENTION_DELETIONS = Counter(
    "larder_retention_deleted_records_total",
    "Records removed by retention jobs",
    ["collection"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "RECOMMENDATION_RUNS",
    "SHOPPING_ITEMS",
    "SYNC_DECISIONS",
    "RETENTION_DELETIONS",
]

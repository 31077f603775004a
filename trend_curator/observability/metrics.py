"""
Prometheus metrics for Trend Curator.

This module defines metrics for:
- Processing-status polling outcomes
- Review actions taken by analysts
- Trend lifecycle transitions
- Summarizer calls
- API requests
"""

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


# Custom registry for this application
metrics_registry = CollectorRegistry()


# ============================================================================
# Processing Status Metrics
# ============================================================================

status_polls_total = Counter(
    "status_polls_total",
    "Processing-status fetches by outcome",
    ["outcome"],  # outcome: ok, rate_limited, error, skipped, discarded
    registry=metrics_registry,
)

# ============================================================================
# Review Metrics
# ============================================================================

review_actions_total = Counter(
    "review_actions_total",
    "Review actions taken in the orchestrator",
    ["action", "outcome"],  # outcome: success, failure, rejected
    registry=metrics_registry,
)

trend_transitions_total = Counter(
    "trend_transitions_total",
    "Accepted trend lifecycle transitions",
    ["from_state", "to_state"],
    registry=metrics_registry,
)

# ============================================================================
# Summarizer Metrics
# ============================================================================

summary_requests_total = Counter(
    "summary_requests_total",
    "Summarizer API calls",
    ["status"],
    registry=metrics_registry,
)

summary_request_duration = Histogram(
    "summary_request_duration_seconds",
    "Summarizer API call duration in seconds",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=metrics_registry,
)

# ============================================================================
# API Metrics
# ============================================================================

api_request_counter = Counter(
    "api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status_code"],
    registry=metrics_registry,
)

api_request_duration = Histogram(
    "api_request_duration_seconds",
    "API request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)


def render_metrics() -> tuple[bytes, str]:
    """Serialize the registry for a /metrics endpoint."""
    return generate_latest(metrics_registry), CONTENT_TYPE_LATEST

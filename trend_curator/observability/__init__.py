"""
Observability for Trend Curator: structured logging and Prometheus metrics.
"""

from trend_curator.observability.logging import (
    AuditLogger,
    JSONFormatter,
    audit_logger,
    log_context,
    setup_logging,
)

__all__ = [
    "AuditLogger",
    "JSONFormatter",
    "audit_logger",
    "log_context",
    "setup_logging",
]

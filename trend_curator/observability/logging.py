"""
Structured logging configuration for Trend Curator.

This module provides JSON log formatting, a project-scoped log context and an
audit logger for review decisions (archives, trend transitions, deletions).
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Context variable carrying project_id / action for every log line in scope
log_context_var: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with standard fields:
    - timestamp: ISO 8601 timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - context: Scoped context (project_id, action) if any
    - extra: Any extra fields passed to the logger
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        ctx = log_context_var.get()
        if ctx:
            log_data["context"] = ctx

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


# ============================================================================
# Logging Setup
# ============================================================================

def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
):
    """
    Setup application logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for file logging
        json_format: Use JSON formatting (True) or plain text (False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.WARNING)

    logging.info(f"Logging configured: level={level}, json={json_format}, file={log_file}")


# ============================================================================
# Context Management
# ============================================================================

class log_context:
    """
    Context manager adding fields to every log message within a scope.

    Example:
        with log_context(project_id="proj_abc", action="skip"):
            logger.info("Loading next signal")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self.token = None

    def __enter__(self):
        current_context = log_context_var.get().copy()
        current_context.update(self.context)
        self.token = log_context_var.set(current_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        log_context_var.reset(self.token)


# ============================================================================
# Helper Functions
# ============================================================================

def log_error(logger: logging.Logger, message: str, error: Exception, **kwargs):
    """Log an error with exception details and structured fields."""
    logger.error(message, extra={
        "extra_fields": {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }
    }, exc_info=error)


# ============================================================================
# Audit Logging
# ============================================================================

class AuditLogger:
    """
    Logger for review decisions.

    Every destructive or state-advancing action on a signal or trend is
    recorded here with its justification note.
    """

    def __init__(self):
        self.logger = logging.getLogger("audit")
        self.logger.setLevel(logging.INFO)

    def log_signal_archived(self, project_id: str, signal_id: str, note: str):
        self.logger.info("Signal archived", extra={
            "extra_fields": {
                "event_type": "signal_archived",
                "project_id": project_id,
                "signal_id": signal_id,
                "note": note,
            }
        })

    def log_trend_transition(
        self,
        project_id: str,
        trend_id: str,
        from_state: str,
        to_state: str,
        note: Optional[str] = None,
    ):
        self.logger.info("Trend transition", extra={
            "extra_fields": {
                "event_type": "trend_transition",
                "project_id": project_id,
                "trend_id": trend_id,
                "from_state": from_state,
                "to_state": to_state,
                "note": note,
            }
        })

    def log_deletion(self, project_id: str, resource_type: str, resource_id: str):
        self.logger.info("Resource deleted", extra={
            "extra_fields": {
                "event_type": "deletion",
                "project_id": project_id,
                "resource_type": resource_type,
                "resource_id": resource_id,
            }
        })


audit_logger = AuditLogger()

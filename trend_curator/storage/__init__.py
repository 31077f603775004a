"""
Storage layer for Trend Curator.

This package provides the repository contracts and their PostgreSQL
implementations for signals, trends and processing status.
"""

# Interface exports
from trend_curator.storage.interfaces import (
    ConnectionError,
    IntegrityError,
    ProcessingStatusRepository,
    SignalRepository,
    StorageError,
    TrendRepository,
)

# Concrete implementations
from trend_curator.storage.postgres import (
    PostgreSQLConnectionPool,
    PostgreSQLProcessingStatusRepository,
    PostgreSQLSignalRepository,
    PostgreSQLTrendRepository,
    initialize_schema,
)

__all__ = [
    # Interfaces
    "SignalRepository",
    "TrendRepository",
    "ProcessingStatusRepository",
    # Exceptions
    "StorageError",
    "ConnectionError",
    "IntegrityError",
    # PostgreSQL implementations
    "PostgreSQLConnectionPool",
    "PostgreSQLSignalRepository",
    "PostgreSQLTrendRepository",
    "PostgreSQLProcessingStatusRepository",
    "initialize_schema",
]

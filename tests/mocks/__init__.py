"""
Mock implementations for testing.

In-memory repositories and fake collaborators so services, the review
workflow and the API can be exercised without PostgreSQL, Celery or a model.
"""

from tests.mocks.storage import (
    MockSignalRepository,
    MockTrendRepository,
    MockProcessingStatusRepository,
)
from tests.mocks.intelligence import MockSummarizer
from tests.mocks.processing import MockPipelineRunner, ScriptedStatusBackend

__all__ = [
    "MockSignalRepository",
    "MockTrendRepository",
    "MockProcessingStatusRepository",
    "MockSummarizer",
    "MockPipelineRunner",
    "ScriptedStatusBackend",
]

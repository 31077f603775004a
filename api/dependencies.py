"""
FastAPI dependency injection providers.

This module provides dependency injection functions for the database pool,
repositories, collaborators and services. Tests replace them through
``app.dependency_overrides``.
"""

from asyncpg import Pool
from fastapi import Depends, HTTPException, status

from trend_curator.errors import SummaryGenerationError
from trend_curator.processing.runner import PipelineRunner
from trend_curator.processing.service import ProcessingStatusService
from trend_curator.services.signals import SignalService
from trend_curator.services.summarizer import TrendSummarizer
from trend_curator.services.trends import TrendService
from trend_curator.storage.interfaces import (
    ProcessingStatusRepository,
    SignalRepository,
    TrendRepository,
)
from trend_curator.storage.postgres import (
    PostgreSQLProcessingStatusRepository,
    PostgreSQLSignalRepository,
    PostgreSQLTrendRepository,
)
from trend_curator.types import GeneratedSummary


class UnconfiguredSummarizer:
    """Stand-in used when no summarizer API key is configured."""

    async def generate(self, texts) -> GeneratedSummary:
        raise SummaryGenerationError(
            "Summarizer is not configured; set ANTHROPIC_API_KEY"
        )


# Database dependencies

async def get_db_pool() -> Pool:
    """
    Get database connection pool from application state.

    Raises:
        HTTPException: If database pool is not initialized
    """
    from api.main import app_state

    if app_state.db_pool is None or app_state.db_pool.pool is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection pool not initialized",
        )

    return app_state.db_pool.pool


# Repository dependencies

async def get_signal_repository(pool: Pool = Depends(get_db_pool)) -> SignalRepository:
    return PostgreSQLSignalRepository(pool)


async def get_trend_repository(pool: Pool = Depends(get_db_pool)) -> TrendRepository:
    return PostgreSQLTrendRepository(pool)


async def get_status_repository(
    pool: Pool = Depends(get_db_pool),
) -> ProcessingStatusRepository:
    return PostgreSQLProcessingStatusRepository(pool)


# Collaborators

async def get_summarizer() -> TrendSummarizer:
    """Summarizer created at startup, or a stand-in that always fails."""
    from api.main import app_state

    return app_state.summarizer or UnconfiguredSummarizer()


async def get_pipeline_runner() -> PipelineRunner:
    """
    Pipeline runner created at startup.

    Raises:
        HTTPException: If the runner is not initialized
    """
    from api.main import app_state

    if app_state.runner is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Processing pipeline not configured",
        )
    return app_state.runner


# Service dependencies

async def get_signal_service(
    signal_repo: SignalRepository = Depends(get_signal_repository),
    trend_repo: TrendRepository = Depends(get_trend_repository),
) -> SignalService:
    return SignalService(signal_repo, trend_repo)


async def get_trend_service(
    signal_repo: SignalRepository = Depends(get_signal_repository),
    trend_repo: TrendRepository = Depends(get_trend_repository),
    summarizer: TrendSummarizer = Depends(get_summarizer),
) -> TrendService:
    return TrendService(signal_repo, trend_repo, summarizer)


async def get_processing_service(
    status_repo: ProcessingStatusRepository = Depends(get_status_repository),
    runner: PipelineRunner = Depends(get_pipeline_runner),
) -> ProcessingStatusService:
    return ProcessingStatusService(status_repo, runner)


async def get_status_reader(
    status_repo: ProcessingStatusRepository = Depends(get_status_repository),
) -> ProcessingStatusService:
    """Status service for reads; works without a configured pipeline runner."""
    return ProcessingStatusService(status_repo)

"""
Test fixtures and sample data for development and testing.

This module provides builders for signals, trends and processing statuses,
and wires services over the in-memory mocks.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Sequence

from tests.mocks import (
    MockPipelineRunner,
    MockProcessingStatusRepository,
    MockSignalRepository,
    MockSummarizer,
    MockTrendRepository,
)
from trend_curator.client.local import LocalReviewBackend
from trend_curator.processing.service import ProcessingStatusService
from trend_curator.services.signals import SignalService
from trend_curator.services.trends import TrendService
from trend_curator.types import (
    ProcessingPhase,
    ProcessingStatus,
    Signal,
    SignalStatus,
    SimilarSignal,
    Trend,
    TrendStatus,
)

PROJECT_ID = "proj_test"

BASE_TIME = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# Sample Signals and Trends
# ============================================================================


def create_sample_signal(
    number: int = 1,
    text: Optional[str] = None,
    status: SignalStatus = SignalStatus.PENDING,
    trend_id: Optional[str] = None,
    title: Optional[str] = None,
    note: Optional[str] = None,
) -> Signal:
    """Create a signal; ``number`` fixes both the id and the import order."""
    return Signal(
        id=f"{number:04d}",
        original_text=text or f"Sample signal number {number} about remote work",
        title=title,
        source="https://example.com/signals",
        note=note,
        status=status,
        trend_id=trend_id,
        created_at=BASE_TIME + timedelta(minutes=number),
    )


def create_sample_trend(
    trend_id: str = "trend-1",
    status: TrendStatus = TrendStatus.DRAFT,
    title: str = "Remote Work",
    note: Optional[str] = None,
    signal_count: int = 0,
) -> Trend:
    return Trend(
        id=trend_id,
        title=title,
        summary="Work is moving out of the office.",
        note=note,
        signal_count=signal_count,
        status=status,
        created_at=BASE_TIME,
    )


def create_similar_signal(
    signal_id: str,
    score: float,
    status: SignalStatus = SignalStatus.PENDING,
    trend_id: Optional[str] = None,
) -> SimilarSignal:
    return SimilarSignal(
        id=signal_id,
        original_text=f"Candidate {signal_id}",
        score=score,
        status=status,
        trend_id=trend_id,
    )


# ============================================================================
# Sample Processing Status
# ============================================================================


def create_processing_status(
    phase: ProcessingPhase = ProcessingPhase.CLAUDE_VERIFICATION,
    total: int = 3,
    embeddings: int = 0,
    similarities: int = 0,
    verifications: int = 0,
    started_at: Optional[datetime] = None,
) -> ProcessingStatus:
    return ProcessingStatus(
        status=phase,
        total_signals=total,
        embeddings_complete=embeddings,
        embedding_similarities_complete=similarities,
        claude_verifications_complete=verifications,
        started_at=started_at,
    )


def create_complete_status(total: int = 3) -> ProcessingStatus:
    return create_processing_status(
        ProcessingPhase.COMPLETE, total, total, total, total, started_at=BASE_TIME
    )


# ============================================================================
# Wired services
# ============================================================================


class ServiceBundle:
    """Services over shared in-memory repositories."""

    def __init__(self, summarizer: Optional[MockSummarizer] = None):
        self.signal_repo = MockSignalRepository()
        self.trend_repo = MockTrendRepository()
        self.status_repo = MockProcessingStatusRepository()
        self.summarizer = summarizer or MockSummarizer(
            title="Remote Work", summary="Work is moving out of the office."
        )
        self.runner = MockPipelineRunner()

        self.signals = SignalService(self.signal_repo, self.trend_repo)
        self.trends = TrendService(self.signal_repo, self.trend_repo, self.summarizer)
        self.processing = ProcessingStatusService(self.status_repo, self.runner)
        self.backend = LocalReviewBackend(self.processing, self.signals, self.trends)

    async def seed_signals(
        self,
        count: int,
        project_id: str = PROJECT_ID,
        similar: Optional[Dict[str, Dict[str, float]]] = None,
    ) -> Sequence[Signal]:
        """Save ``count`` Pending signals numbered 0001.. with optional scores."""
        signals = [create_sample_signal(n) for n in range(1, count + 1)]
        for signal in signals:
            await self.signal_repo.save(project_id, signal)
        for signal_id, scores in (similar or {}).items():
            self.signal_repo.set_similar(project_id, signal_id, scores)
        return signals

    async def seed_status(
        self, status: ProcessingStatus, project_id: str = PROJECT_ID
    ) -> None:
        await self.status_repo.save(project_id, status)

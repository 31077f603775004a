"""
In-process review backend.

Adapts the server-side services to the ReviewBackend protocol so the review
workflow can run against a local database without the REST API.
"""

from typing import Optional, Sequence

from trend_curator.processing.service import ProcessingStatusService
from trend_curator.services.signals import SignalService
from trend_curator.services.trends import TrendService
from trend_curator.types import (
    NextUnassigned,
    ProcessingStatus,
    RetryResult,
    Signal,
    SignalCreate,
    SignalFilter,
    SignalList,
    SignalUpdate,
    Trend,
    TrendDetail,
    TrendList,
    TrendUpdate,
    UndoResult,
)


class LocalReviewBackend:
    """ReviewBackend delegating straight to the services."""

    def __init__(
        self,
        status_service: ProcessingStatusService,
        signal_service: SignalService,
        trend_service: TrendService,
    ):
        self.status = status_service
        self.signals = signal_service
        self.trends = trend_service

    async def get_processing_status(self, project_id: str) -> ProcessingStatus:
        return await self.status.get_status(project_id)

    async def resume_processing(self, project_id: str) -> None:
        await self.status.resume(project_id)

    async def retry_failed_verifications(self, project_id: str) -> RetryResult:
        return await self.status.retry_verifications(project_id)

    async def list_signals(
        self, project_id: str, filters: Optional[SignalFilter] = None
    ) -> SignalList:
        return await self.signals.list_signals(project_id, filters)

    async def get_next_unassigned(
        self, project_id: str, exclude_id: Optional[str] = None
    ) -> NextUnassigned:
        return await self.signals.get_next_unassigned(project_id, exclude_id)

    async def create_signal(self, project_id: str, payload: SignalCreate) -> Signal:
        return await self.signals.create_signal(project_id, payload)

    async def update_signal(
        self, project_id: str, signal_id: str, payload: SignalUpdate
    ) -> Signal:
        return await self.signals.update_signal(project_id, signal_id, payload)

    async def delete_signal(self, project_id: str, signal_id: str) -> None:
        await self.signals.delete_signal(project_id, signal_id)

    async def list_trends(self, project_id: str, include_archived: bool = False) -> TrendList:
        return await self.trends.list_trends(project_id, include_archived)

    async def get_trend(self, project_id: str, trend_id: str) -> TrendDetail:
        return await self.trends.get_trend(project_id, trend_id)

    async def create_trend(self, project_id: str, signal_ids: Sequence[str]) -> Trend:
        return await self.trends.create_trend(project_id, signal_ids)

    async def update_trend(self, project_id: str, trend_id: str, payload: TrendUpdate) -> Trend:
        return await self.trends.update_trend(project_id, trend_id, payload)

    async def delete_trend(self, project_id: str, trend_id: str) -> None:
        await self.trends.delete_trend(project_id, trend_id)

    async def undo_trend(self, project_id: str, trend_id: str) -> UndoResult:
        return await self.trends.undo_trend(project_id, trend_id)

    async def regenerate_trend_summary(self, project_id: str, trend_id: str) -> Trend:
        return await self.trends.regenerate_summary(project_id, trend_id)

    async def add_signals(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Sequence[str],
        regenerate_summary: bool = False,
    ) -> Trend:
        return await self.trends.add_signals(project_id, trend_id, signal_ids, regenerate_summary)

    async def remove_signals(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Sequence[str],
        regenerate_summary: bool = False,
    ) -> Trend:
        return await self.trends.remove_signals(
            project_id, trend_id, signal_ids, regenerate_summary
        )

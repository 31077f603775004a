"""
Collaborator contracts used by the review client.

The review workflow never talks to storage directly; everything goes through
a ``ReviewBackend``. Two implementations exist: ``HttpReviewBackend`` for a
remote API and ``LocalReviewBackend`` for in-process services.
"""

from typing import Optional, Protocol, Sequence

from trend_curator.types import (
    ColumnMappings,
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
    UploadPreview,
    UploadResult,
)


class ReviewBackend(Protocol):
    """
    Protocol for the signal/trend backend.

    All methods are project-scoped. Implementations raise the errors from
    ``trend_curator.errors``; transport failures are TransportError, HTTP 429
    is RateLimitedError.
    """

    # Processing status
    async def get_processing_status(self, project_id: str) -> ProcessingStatus:
        ...

    async def resume_processing(self, project_id: str) -> None:
        ...

    async def retry_failed_verifications(self, project_id: str) -> RetryResult:
        ...

    # Signals
    async def list_signals(
        self, project_id: str, filters: Optional[SignalFilter] = None
    ) -> SignalList:
        ...

    async def get_next_unassigned(
        self, project_id: str, exclude_id: Optional[str] = None
    ) -> NextUnassigned:
        ...

    async def create_signal(self, project_id: str, payload: SignalCreate) -> Signal:
        ...

    async def update_signal(
        self, project_id: str, signal_id: str, payload: SignalUpdate
    ) -> Signal:
        ...

    async def delete_signal(self, project_id: str, signal_id: str) -> None:
        ...

    # Trends
    async def list_trends(
        self, project_id: str, include_archived: bool = False
    ) -> TrendList:
        ...

    async def get_trend(self, project_id: str, trend_id: str) -> TrendDetail:
        ...

    async def create_trend(self, project_id: str, signal_ids: Sequence[str]) -> Trend:
        ...

    async def update_trend(
        self, project_id: str, trend_id: str, payload: TrendUpdate
    ) -> Trend:
        ...

    async def delete_trend(self, project_id: str, trend_id: str) -> None:
        ...

    async def undo_trend(self, project_id: str, trend_id: str) -> UndoResult:
        ...

    async def regenerate_trend_summary(self, project_id: str, trend_id: str) -> Trend:
        ...


class Uploader(Protocol):
    """Spreadsheet import collaborator; parsing and mapping happen on its side."""

    async def preview(self, project_id: str, filename: str, content: bytes) -> UploadPreview:
        ...

    async def upload(
        self,
        project_id: str,
        filename: str,
        content: bytes,
        mappings: ColumnMappings,
    ) -> UploadResult:
        ...



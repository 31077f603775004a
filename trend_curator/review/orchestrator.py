"""
Signal review orchestrator.

Drives one analyst's review of a project:

    checking-status -> awaiting-signal <-> editing-trend
                           |
                           v
                      all-reviewed

Review starts only once processing is complete. In awaiting-signal the
analyst skips, archives or creates a trend from the current signal and any
picked candidates; creating a trend opens it for editing, and saving the
edit moves on to the next signal. Cancelling the editor returns to the same
signal without advancing the queue.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from trend_curator.errors import (
    ActionInProgressError,
    InvalidTransitionError,
    ProcessingIncompleteError,
    ValidationError,
)
from trend_curator.observability.metrics import review_actions_total
from trend_curator.processing.poller import StatusPoller
from trend_curator.review.selection import SimilaritySelection
from trend_curator.review.session import ProjectSession
from trend_curator.types import (
    NextUnassigned,
    Signal,
    SignalStatus,
    SignalUpdate,
    Trend,
    TrendUpdate,
    UndoResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROCESSING_INCOMPLETE_MESSAGE = (
    "Please wait until processing is complete before reviewing signals."
)


class ReviewState(str, Enum):
    CHECKING_STATUS = "checking-status"
    AWAITING_SIGNAL = "awaiting-signal"
    EDITING_TREND = "editing-trend"
    ALL_REVIEWED = "all-reviewed"


class ReviewOrchestrator:
    """
    Sequences review decisions into backend calls.

    Only one action runs at a time; starting another while one is in flight
    raises ActionInProgressError, so a trend can never be submitted twice.
    Failures are recorded in ``error`` as a user-facing message and re-raised.
    """

    def __init__(self, session: ProjectSession, poller: Optional[StatusPoller] = None):
        self.session = session
        self.backend = session.backend
        self.project_id = session.project_id

        self.state = ReviewState.CHECKING_STATUS
        self.current: Optional[Signal] = None
        self.selection: Optional[SimilaritySelection] = None
        self.remaining_count = 0
        self.editing_trend: Optional[Trend] = None
        self.error: Optional[str] = None

        self._poller = poller
        self._action: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._action is not None

    # ========================================================================
    # Startup
    # ========================================================================

    async def start(self, timeout: Optional[float] = None) -> None:
        """
        Wait for processing to complete, then load the first signal.

        Raises:
            ProcessingIncompleteError: If processing is not complete within
                ``timeout`` seconds
        """
        self._require(ReviewState.CHECKING_STATUS)
        poller = self._poller or self.session.create_poller()

        async def wait() -> None:
            try:
                await poller.activate()
                complete = poller.is_complete or await poller.wait_until_complete(timeout)
            finally:
                poller.dispose()
            if not complete:
                raise ProcessingIncompleteError(PROCESSING_INCOMPLETE_MESSAGE)
            await self._load(None)

        await self._run("start", wait)

    # ========================================================================
    # Queue
    # ========================================================================

    async def load_next(self, exclude_id: Optional[str] = None) -> Optional[Signal]:
        """
        Load the oldest Pending signal and its ranked candidates.

        Without an intervening mutation, repeated calls return the same
        signal and ranking.
        """
        self._require(
            ReviewState.AWAITING_SIGNAL,
            ReviewState.ALL_REVIEWED,
        )
        return await self._run("load_next", lambda: self._load(exclude_id))

    async def skip(self) -> Optional[Signal]:
        """Move past the current signal without changing it."""
        self._require(ReviewState.AWAITING_SIGNAL)
        current_id = self.current.id
        return await self._run("skip", lambda: self._load(current_id))

    async def archive(self, note: str) -> Optional[Signal]:
        """Archive the current signal with a justification note."""
        self._require(ReviewState.AWAITING_SIGNAL)
        signal_id = self.current.id

        async def archive_current() -> Optional[Signal]:
            if not note or not note.strip():
                raise ValidationError("A note is required to archive a signal")
            await self.backend.update_signal(
                self.project_id,
                signal_id,
                SignalUpdate(status=SignalStatus.ARCHIVED, note=note.strip()),
            )
            logger.info(f"Archived signal {self.project_id}/{signal_id}")
            return await self._load(None)

        return await self._run("archive", archive_current)

    # ========================================================================
    # Trend editing
    # ========================================================================

    async def create_trend(self) -> Trend:
        """Create a trend from the current signal plus picked candidates and open it."""
        self._require(ReviewState.AWAITING_SIGNAL)
        signal_ids = self.selection.trend_signal_ids()

        async def create() -> Trend:
            trend = await self.backend.create_trend(self.project_id, signal_ids)
            self.selection.clear()
            self.editing_trend = trend
            self.state = ReviewState.EDITING_TREND
            logger.info(f"Created trend {trend.id} from {len(signal_ids)} signals")
            return trend

        return await self._run("create_trend", create)

    async def save_trend(self, update: TrendUpdate) -> Optional[Signal]:
        """Persist the edited trend and move on to the next signal."""
        self._require(ReviewState.EDITING_TREND)
        trend_id = self.editing_trend.id

        async def save() -> Optional[Signal]:
            await self.backend.update_trend(self.project_id, trend_id, update)
            self.editing_trend = None
            return await self._load(None)

        return await self._run("save_trend", save)

    async def regenerate_summary(self) -> Trend:
        """Replace the edited trend's title and summary with a fresh pair."""
        self._require(ReviewState.EDITING_TREND)
        trend_id = self.editing_trend.id

        async def regenerate() -> Trend:
            trend = await self.backend.regenerate_trend_summary(self.project_id, trend_id)
            self.editing_trend = trend
            return trend

        return await self._run("regenerate_summary", regenerate)

    async def undo_trend(self) -> UndoResult:
        """Dissolve the trend being edited; its signals return to the queue."""
        self._require(ReviewState.EDITING_TREND)
        trend_id = self.editing_trend.id

        async def undo() -> UndoResult:
            result = await self.backend.undo_trend(self.project_id, trend_id)
            self.editing_trend = None
            await self._load(None)
            return result

        return await self._run("undo_trend", undo)

    def cancel_trend_edit(self) -> None:
        """Close the editor and stay on the same signal."""
        self._require(ReviewState.EDITING_TREND)
        if self.busy:
            raise ActionInProgressError(f"{self._action} is in progress")
        self.editing_trend = None
        self.state = ReviewState.AWAITING_SIGNAL

    # ========================================================================
    # Private Methods
    # ========================================================================

    def _require(self, *states: ReviewState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransitionError(
                f"Review is {self.state.value}; expected {allowed}"
            )

    async def _run(self, action: str, operation: Callable[[], Awaitable[T]]) -> T:
        if self._action is not None:
            review_actions_total.labels(action=action, outcome="rejected").inc()
            raise ActionInProgressError(f"{self._action} is already in progress")

        self._action = action
        self.error = None
        try:
            with self.session.log_scope(action=action):
                result = await operation()
        except Exception as e:
            self.error = str(e) or type(e).__name__
            review_actions_total.labels(action=action, outcome="failure").inc()
            logger.warning(f"Review action {action} failed for {self.project_id}: {e}")
            raise
        finally:
            self._action = None

        review_actions_total.labels(action=action, outcome="success").inc()
        return result

    async def _load(self, exclude_id: Optional[str]) -> Optional[Signal]:
        result: NextUnassigned = await self.backend.get_next_unassigned(
            self.project_id, exclude_id
        )
        self.remaining_count = result.remaining_count

        if result.signal is None:
            self.current = None
            self.selection = None
            self.state = ReviewState.ALL_REVIEWED
            logger.info(f"All signals reviewed in {self.project_id}")
            return None

        self.current = result.signal
        self.selection = SimilaritySelection(
            result.signal.id,
            result.similar_signals,
            hide_reviewed=self.session.hide_reviewed,
            score_bands=self.session.score_bands,
        )
        self.state = ReviewState.AWAITING_SIGNAL
        return result.signal

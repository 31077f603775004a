"""
Processing status poller.

Watches one project's processing status until the pipeline is complete:
one fetch on activation, then one per interval on a fixed-rate schedule.
Once complete the schedule stops for good. Disposing the poller cancels the
schedule immediately; a fetch already on the wire may still finish, but its
result is dropped.

At most one fetch is in flight at a time. A tick that comes due while the
previous fetch is still running is skipped rather than queued.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from trend_curator import config
from trend_curator.client.interfaces import ReviewBackend
from trend_curator.errors import CuratorError, RateLimitedError
from trend_curator.observability.metrics import status_polls_total
from trend_curator.processing.status import is_complete
from trend_curator.types import ProcessingStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[ProcessingStatus], None]


class StatusPoller:
    """
    Polls ``get_processing_status`` for one project.

    Example:
        ```python
        poller = StatusPoller(backend, "proj_1", interval=5.0)
        await poller.activate()
        if await poller.wait_until_complete(timeout=600):
            start_review()
        poller.dispose()
        ```

    Attributes:
        status: Last status received, None before the first success
        error: Message of the last surfaced failure (initial fetch or an
            explicit trigger); cleared by the next successful fetch
    """

    def __init__(
        self,
        backend: ReviewBackend,
        project_id: str,
        interval: Optional[float] = None,
    ):
        self.backend = backend
        self.project_id = project_id
        self.interval = interval if interval is not None else config.get_poll_interval()
        if self.interval <= 0:
            raise ValueError("Poll interval must be positive")

        self.status: Optional[ProcessingStatus] = None
        self.error: Optional[str] = None

        self._scheduler: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._fetch_lock = asyncio.Lock()
        self._complete = asyncio.Event()
        self._listeners: List[StatusListener] = []
        self._disposed = False

    # ========================================================================
    # State
    # ========================================================================

    @property
    def is_complete(self) -> bool:
        return is_complete(self.status)

    @property
    def is_polling(self) -> bool:
        return self._scheduler is not None and not self._scheduler.done()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Call ``listener`` with every accepted status.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def activate(self) -> None:
        """Fetch once now, then keep polling until complete."""
        if self._disposed:
            raise RuntimeError("Poller has been disposed")
        if self._scheduler is not None:
            return

        await self._spawn_fetch(surface_errors=True)
        self._ensure_scheduler()

    def dispose(self) -> None:
        """Stop polling. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True

        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None:
            scheduler.cancel()
        self._listeners.clear()
        # Wake anyone blocked in wait_until_complete
        self._complete.set()
        logger.debug(f"Status poller for {self.project_id} disposed")

    async def wait_until_complete(self, timeout: Optional[float] = None) -> bool:
        """
        Block until processing completes or the poller is disposed.

        Returns:
            True if processing is complete, False on timeout or disposal
        """
        try:
            await asyncio.wait_for(self._complete.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return self.is_complete and not self._disposed

    async def __aenter__(self):
        await self.activate()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    # ========================================================================
    # Triggers
    # ========================================================================

    async def refresh(self) -> Optional[ProcessingStatus]:
        """Fetch now, after any fetch already in flight has finished."""
        if self._disposed:
            return None
        await self._spawn_fetch(surface_errors=True)
        return self.status

    async def resume_processing(self) -> bool:
        """
        Ask the pipeline to resume, then refresh.

        Returns:
            True on success; False with the reason in ``error`` otherwise
        """
        return await self._trigger("resume", self.backend.resume_processing)

    async def retry_failed_verifications(self) -> bool:
        """Ask the pipeline to retry failed verifications, then refresh."""
        return await self._trigger("retry", self.backend.retry_failed_verifications)

    async def _trigger(self, name: str, call) -> bool:
        if self._disposed:
            return False
        try:
            await call(self.project_id)
        except CuratorError as e:
            logger.warning(f"Processing {name} failed for {self.project_id}: {e}")
            if not self._disposed:
                self.error = str(e)
            return False

        if self._disposed:
            return False
        self.error = None
        await self.refresh()
        # Resumed work may leave the complete state; watch it again
        self._ensure_scheduler()
        return True

    # ========================================================================
    # Private Methods
    # ========================================================================

    def _ensure_scheduler(self) -> None:
        if self._disposed or self.is_complete or self.is_polling:
            return
        self._scheduler = asyncio.create_task(
            self._run_schedule(), name=f"status-poller-{self.project_id}"
        )

    async def _run_schedule(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval

        while not self._disposed and not self.is_complete:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += self.interval

            if self._disposed or self.is_complete:
                break
            if self._fetch_lock.locked():
                status_polls_total.labels(outcome="skipped").inc()
                logger.debug(f"Status fetch still running for {self.project_id}, tick skipped")
                continue

            self._inflight = asyncio.create_task(self._locked_fetch(surface_errors=False))

    async def _spawn_fetch(self, surface_errors: bool) -> None:
        self._inflight = asyncio.create_task(self._locked_fetch(surface_errors))
        await self._inflight

    async def _locked_fetch(self, surface_errors: bool) -> None:
        # Serializes every fetch path: activation, ticks and triggers
        async with self._fetch_lock:
            if self._disposed:
                return
            await self._fetch(surface_errors)

    async def _fetch(self, surface_errors: bool) -> None:
        try:
            status = await self.backend.get_processing_status(self.project_id)
        except RateLimitedError:
            # Transient; keep the last status and wait for the next tick
            status_polls_total.labels(outcome="rate_limited").inc()
            logger.debug(f"Status fetch rate limited for {self.project_id}")
            return
        except Exception as e:
            if self._disposed:
                status_polls_total.labels(outcome="discarded").inc()
                return
            status_polls_total.labels(outcome="error").inc()
            logger.warning(f"Status fetch failed for {self.project_id}: {e}")
            if surface_errors:
                self.error = str(e)
            return

        if self._disposed:
            status_polls_total.labels(outcome="discarded").inc()
            return

        status_polls_total.labels(outcome="ok").inc()
        self._apply(status)

    def _apply(self, status: ProcessingStatus) -> None:
        self.status = status
        self.error = None

        if is_complete(status):
            self._complete.set()
            scheduler, self._scheduler = self._scheduler, None
            if scheduler is not None and scheduler is not asyncio.current_task():
                scheduler.cancel()
            logger.info(f"Processing complete for {self.project_id} ({status.status.value})")
        else:
            self._complete.clear()

        for listener in list(self._listeners):
            listener(status)

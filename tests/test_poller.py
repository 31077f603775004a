"""
Tests for the processing status poller.

Uses short real intervals and a scripted backend; no network.
"""

import asyncio

import pytest

from tests.fixtures import PROJECT_ID, create_complete_status, create_processing_status
from tests.mocks import ScriptedStatusBackend
from trend_curator.errors import RateLimitedError, TransportError
from trend_curator.processing.poller import StatusPoller
from trend_curator.types import ProcessingPhase


def in_progress(verifications: int = 1):
    return create_processing_status(
        ProcessingPhase.CLAUDE_VERIFICATION, total=3,
        embeddings=3, similarities=3, verifications=verifications,
    )


class TestStatusPoller:

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            StatusPoller(ScriptedStatusBackend([in_progress()]), PROJECT_ID, interval=0)

    @pytest.mark.asyncio
    async def test_activate_fetches_immediately(self):
        backend = ScriptedStatusBackend([in_progress()])
        poller = StatusPoller(backend, PROJECT_ID, interval=10)

        await poller.activate()
        try:
            assert backend.calls == 1
            assert poller.status.claude_verifications_complete == 1
            assert poller.is_polling is True
        finally:
            poller.dispose()

    @pytest.mark.asyncio
    async def test_stops_polling_once_complete(self):
        backend = ScriptedStatusBackend([in_progress(1), in_progress(2), create_complete_status()])
        poller = StatusPoller(backend, PROJECT_ID, interval=0.01)

        await poller.activate()
        complete = await poller.wait_until_complete(timeout=2)
        calls = backend.calls
        await asyncio.sleep(0.05)

        assert complete is True
        assert poller.is_polling is False
        assert backend.calls == calls == 3
        poller.dispose()

    @pytest.mark.asyncio
    async def test_counters_complete_stops_polling(self):
        """All counters at total stop polling even though the phase lags."""
        backend = ScriptedStatusBackend([in_progress(3)])
        poller = StatusPoller(backend, PROJECT_ID, interval=0.01)

        await poller.activate()
        await asyncio.sleep(0.05)

        assert poller.is_complete is True
        assert poller.is_polling is False
        assert backend.calls == 1
        poller.dispose()

    @pytest.mark.asyncio
    async def test_rate_limited_tick_is_silent(self):
        """A 429 keeps the last status, sets no error and polling carries on."""
        first = in_progress(1)
        backend = ScriptedStatusBackend(
            [first, RateLimitedError("Too many requests", status_code=429), in_progress(2),
             create_complete_status()]
        )
        poller = StatusPoller(backend, PROJECT_ID, interval=0.05)
        seen = []
        poller.subscribe(seen.append)

        await poller.activate()
        await asyncio.sleep(0.075)

        assert backend.calls == 2
        assert poller.status == first
        assert poller.error is None
        assert poller.is_polling is True

        assert await poller.wait_until_complete(timeout=2) is True
        assert backend.calls == 4
        assert [s.claude_verifications_complete for s in seen] == [1, 2, 3]
        poller.dispose()

    @pytest.mark.asyncio
    async def test_initial_failure_is_surfaced(self):
        backend = ScriptedStatusBackend(
            [TransportError("Processing status not found", status_code=404),
             create_complete_status()]
        )
        poller = StatusPoller(backend, PROJECT_ID, interval=0.01)

        await poller.activate()
        assert poller.error == "Processing status not found"
        assert poller.status is None

        assert await poller.wait_until_complete(timeout=2) is True
        assert poller.error is None
        poller.dispose()

    @pytest.mark.asyncio
    async def test_overlapping_ticks_are_skipped(self):
        """A slow fetch is never doubled up; due ticks are dropped instead."""
        backend = ScriptedStatusBackend([in_progress()], delay=0.05)
        poller = StatusPoller(backend, PROJECT_ID, interval=0.01)

        await poller.activate()
        await asyncio.sleep(0.2)
        poller.dispose()
        await asyncio.sleep(0.06)

        assert backend.max_in_flight == 1
        # Twenty ticks came due; only those finding no fetch in flight ran
        assert backend.calls < 10

    @pytest.mark.asyncio
    async def test_dispose_stops_schedule(self):
        backend = ScriptedStatusBackend([in_progress()])
        poller = StatusPoller(backend, PROJECT_ID, interval=0.01)

        await poller.activate()
        poller.dispose()
        calls = backend.calls
        await asyncio.sleep(0.05)

        assert backend.calls == calls
        assert poller.is_polling is False
        assert poller.disposed is True

    @pytest.mark.asyncio
    async def test_result_after_dispose_is_discarded(self):
        first = in_progress(1)
        backend = ScriptedStatusBackend([first, create_complete_status()], delay=0.02)
        poller = StatusPoller(backend, PROJECT_ID, interval=10)
        seen = []

        await poller.activate()
        poller.subscribe(seen.append)
        refresh = asyncio.create_task(poller.refresh())
        await asyncio.sleep(0.005)
        poller.dispose()
        await refresh

        assert backend.calls == 2
        assert poller.status == first
        assert seen == []

    @pytest.mark.asyncio
    async def test_wait_returns_false_when_disposed(self):
        backend = ScriptedStatusBackend([in_progress()])
        poller = StatusPoller(backend, PROJECT_ID, interval=10)
        await poller.activate()

        waiter = asyncio.create_task(poller.wait_until_complete(timeout=2))
        await asyncio.sleep(0)
        poller.dispose()

        assert await waiter is False

    @pytest.mark.asyncio
    async def test_activate_after_dispose_fails(self):
        poller = StatusPoller(ScriptedStatusBackend([in_progress()]), PROJECT_ID, interval=10)
        poller.dispose()

        with pytest.raises(RuntimeError):
            await poller.activate()

    @pytest.mark.asyncio
    async def test_resume_failure_sets_error(self):
        backend = ScriptedStatusBackend([create_processing_status(ProcessingPhase.ERROR)])
        backend.resume_error = TransportError("Failed to resume processing", status_code=502)
        poller = StatusPoller(backend, PROJECT_ID, interval=10)
        await poller.activate()

        assert await poller.resume_processing() is False
        assert poller.error == "Failed to resume processing"
        poller.dispose()

    @pytest.mark.asyncio
    async def test_resume_restarts_polling(self):
        """Resuming out of an error state watches the status again."""
        backend = ScriptedStatusBackend(
            [create_processing_status(ProcessingPhase.ERROR), in_progress(1),
             create_complete_status()]
        )
        poller = StatusPoller(backend, PROJECT_ID, interval=0.01)
        await poller.activate()
        assert poller.is_polling is False

        assert await poller.resume_processing() is True
        assert backend.resumed == 1
        assert poller.is_complete is False
        assert poller.is_polling is True

        assert await poller.wait_until_complete(timeout=2) is True
        poller.dispose()

    @pytest.mark.asyncio
    async def test_context_manager_disposes(self):
        backend = ScriptedStatusBackend([in_progress()])

        async with StatusPoller(backend, PROJECT_ID, interval=10) as poller:
            assert poller.status is not None

        assert poller.disposed is True

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_fetch_one_at_a_time(self):
        backend = ScriptedStatusBackend([in_progress(1)], delay=0.02)
        poller = StatusPoller(backend, PROJECT_ID, interval=10)
        await poller.activate()

        results = await asyncio.gather(
            poller.refresh(), poller.refresh(), poller.resume_processing()
        )

        assert results[2] is True
        assert backend.calls == 4
        assert backend.max_in_flight == 1
        poller.dispose()

    @pytest.mark.asyncio
    async def test_trigger_finishing_after_dispose_changes_nothing(self):
        backend = ScriptedStatusBackend([in_progress(1)])
        gate = asyncio.Event()

        async def slow_resume(project_id):
            await gate.wait()

        backend.resume_processing = slow_resume
        poller = StatusPoller(backend, PROJECT_ID, interval=10)
        await poller.activate()
        poller.error = "Previous failure"

        resume = asyncio.create_task(poller.resume_processing())
        await asyncio.sleep(0)
        poller.dispose()
        gate.set()

        assert await resume is False
        assert poller.error == "Previous failure"
        assert backend.calls == 1

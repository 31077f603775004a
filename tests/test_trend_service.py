"""
Unit tests for TrendService: assembly, lifecycle edits, undo and membership.
"""

import pytest

from tests.fixtures import PROJECT_ID, ServiceBundle, create_sample_signal
from tests.mocks import MockSummarizer
from trend_curator.errors import (
    InconsistencyError,
    NotFoundError,
    SummaryGenerationError,
    TerminalStateError,
    ValidationError,
)
from trend_curator.types import SignalStatus, TrendStatus, TrendUpdate


@pytest.fixture
def services():
    return ServiceBundle()


async def members(services, trend_id):
    return await services.signal_repo.list_by_trend(PROJECT_ID, trend_id)


# ============================================================================
# Creation
# ============================================================================


class TestCreateTrend:

    @pytest.mark.asyncio
    async def test_create_combines_signals(self, services):
        await services.seed_signals(3)

        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        assert trend.status == TrendStatus.DRAFT
        assert trend.signal_count == 2
        assert trend.title == "Remote Work"
        for signal_id in ("0001", "0002"):
            signal = await services.signal_repo.get(PROJECT_ID, signal_id)
            assert signal.status == SignalStatus.COMBINED
            assert signal.trend_id == trend.id
        untouched = await services.signal_repo.get(PROJECT_ID, "0003")
        assert untouched.status == SignalStatus.PENDING

    @pytest.mark.asyncio
    async def test_create_appends_note_line(self, services):
        await services.signal_repo.save(
            PROJECT_ID, create_sample_signal(1, title="Hybrid offices", note="Seen twice")
        )
        await services.signal_repo.save(PROJECT_ID, create_sample_signal(2))

        await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        first = await services.signal_repo.get(PROJECT_ID, "0001")
        second = await services.signal_repo.get(PROJECT_ID, "0002")
        assert first.note == "Seen twice\n\nCombined with signals: Hybrid offices, 0002"
        assert second.note == "Combined with signals: Hybrid offices, 0002"

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_collapsed(self, services):
        await services.seed_signals(2)

        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002", "0001"])

        assert trend.signal_count == 2

    @pytest.mark.asyncio
    async def test_empty_list_rejected(self, services):
        with pytest.raises(ValidationError):
            await services.trends.create_trend(PROJECT_ID, [])

    @pytest.mark.asyncio
    async def test_missing_signal_writes_nothing(self, services):
        await services.seed_signals(1)

        with pytest.raises(NotFoundError):
            await services.trends.create_trend(PROJECT_ID, ["0001", "0404"])

        assert (await services.trends.list_trends(PROJECT_ID, True)).total == 0
        assert services.summarizer.calls == []

    @pytest.mark.asyncio
    async def test_combined_signal_rejected(self, services):
        await services.seed_signals(3)
        await services.trends.create_trend(PROJECT_ID, ["0001"])

        with pytest.raises(TerminalStateError):
            await services.trends.create_trend(PROJECT_ID, ["0002", "0001"])

        signal = await services.signal_repo.get(PROJECT_ID, "0002")
        assert signal.status == SignalStatus.PENDING

    @pytest.mark.asyncio
    async def test_summary_failure_writes_nothing(self):
        services = ServiceBundle(summarizer=MockSummarizer(fail=True))
        await services.seed_signals(2)

        with pytest.raises(SummaryGenerationError):
            await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        assert (await services.trends.list_trends(PROJECT_ID, True)).total == 0
        signal = await services.signal_repo.get(PROJECT_ID, "0001")
        assert signal.status == SignalStatus.PENDING

    @pytest.mark.asyncio
    async def test_empty_generated_title_falls_back(self):
        services = ServiceBundle(summarizer=MockSummarizer(title="  ", summary="Summary."))
        await services.seed_signals(1)

        trend = await services.trends.create_trend(PROJECT_ID, ["0001"])

        assert trend.title == "Trend"

    @pytest.mark.asyncio
    async def test_member_update_failure_is_surfaced(self, services):
        await services.seed_signals(2)
        services.signal_repo.fail_assign = True

        with pytest.raises(InconsistencyError) as exc_info:
            await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        error = exc_info.value
        assert error.signal_ids == ["0001", "0002"]
        # The trend row is kept so the inconsistency can be reconciled
        assert await services.trend_repo.get(PROJECT_ID, error.trend_id) is not None


# ============================================================================
# Lifecycle
# ============================================================================


class TestUpdateTrend:

    @pytest.mark.asyncio
    async def test_finalize(self, services):
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        updated = await services.trends.update_trend(
            PROJECT_ID, trend.id, TrendUpdate(status=TrendStatus.FINAL, title="Hybrid Work")
        )

        assert updated.status == TrendStatus.FINAL
        assert updated.title == "Hybrid Work"

    @pytest.mark.asyncio
    async def test_archive_with_empty_note_rejected(self, services):
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        with pytest.raises(ValidationError):
            await services.trends.update_trend(
                PROJECT_ID, trend.id, TrendUpdate(status=TrendStatus.ARCHIVED, note="")
            )

        stored = await services.trend_repo.get(PROJECT_ID, trend.id)
        assert stored.status == TrendStatus.DRAFT

    @pytest.mark.asyncio
    async def test_retire_with_note(self, services):
        await services.seed_signals(1)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001"])

        updated = await services.trends.update_trend(
            PROJECT_ID, trend.id, TrendUpdate(status=TrendStatus.RETIRED, note="Faded")
        )

        assert updated.status == TrendStatus.RETIRED
        assert updated.note == "Faded"

    @pytest.mark.asyncio
    async def test_terminal_trend_cannot_be_edited(self, services):
        await services.seed_signals(1)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001"])
        await services.trends.update_trend(
            PROJECT_ID, trend.id, TrendUpdate(status=TrendStatus.RETIRED, note="Faded")
        )

        with pytest.raises(TerminalStateError):
            await services.trends.update_trend(PROJECT_ID, trend.id, TrendUpdate(title="New"))
        with pytest.raises(TerminalStateError):
            await services.trends.regenerate_summary(PROJECT_ID, trend.id)

    @pytest.mark.asyncio
    async def test_update_unknown_trend(self, services):
        with pytest.raises(NotFoundError):
            await services.trends.update_trend(PROJECT_ID, "nope", TrendUpdate(title="x"))


# ============================================================================
# Undo and delete
# ============================================================================


class TestUndoTrend:

    @pytest.mark.asyncio
    async def test_undo_restores_signals(self, services):
        await services.seed_signals(3)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        result = await services.trends.undo_trend(PROJECT_ID, trend.id)

        assert result.signals_restored == 2
        assert result.trend.status == TrendStatus.ARCHIVED
        assert result.trend.signal_count == 0
        for signal_id in ("0001", "0002"):
            signal = await services.signal_repo.get(PROJECT_ID, signal_id)
            assert signal.status == SignalStatus.PENDING
            assert signal.trend_id is None

        next_up = await services.signals.get_next_unassigned(PROJECT_ID)
        assert next_up.signal.id in ("0001", "0002")
        assert next_up.remaining_count == 2

    @pytest.mark.asyncio
    async def test_undo_archived_trend_rejected(self, services):
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])
        await services.trends.undo_trend(PROJECT_ID, trend.id)

        with pytest.raises(TerminalStateError):
            await services.trends.undo_trend(PROJECT_ID, trend.id)

    @pytest.mark.asyncio
    async def test_archived_trends_hidden_by_default(self, services):
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001"])
        await services.trends.create_trend(PROJECT_ID, ["0002"])
        await services.trends.undo_trend(PROJECT_ID, trend.id)

        assert (await services.trends.list_trends(PROJECT_ID)).total == 1
        assert (await services.trends.list_trends(PROJECT_ID, include_archived=True)).total == 2

    @pytest.mark.asyncio
    async def test_delete_releases_signals(self, services):
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        await services.trends.delete_trend(PROJECT_ID, trend.id)

        assert await services.trend_repo.get(PROJECT_ID, trend.id) is None
        pending = await services.signal_repo.count(PROJECT_ID, SignalStatus.PENDING)
        assert pending == 2


# ============================================================================
# Membership
# ============================================================================


class TestMembership:

    @pytest.mark.asyncio
    async def test_add_signals(self, services):
        await services.seed_signals(3)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001"])

        updated = await services.trends.add_signals(PROJECT_ID, trend.id, ["0002", "0001"])

        assert updated.signal_count == 2
        added = await services.signal_repo.get(PROJECT_ID, "0002")
        assert added.trend_id == trend.id
        assert added.note == "Added to trend with signals: 0002"

    @pytest.mark.asyncio
    async def test_add_signal_from_other_trend_rejected(self, services):
        await services.seed_signals(2)
        first = await services.trends.create_trend(PROJECT_ID, ["0001"])
        second = await services.trends.create_trend(PROJECT_ID, ["0002"])

        with pytest.raises(TerminalStateError):
            await services.trends.add_signals(PROJECT_ID, first.id, ["0002"])

        assert len(await members(services, second.id)) == 1

    @pytest.mark.asyncio
    async def test_add_with_regenerate(self):
        services = ServiceBundle(summarizer=MockSummarizer())
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001"])

        updated = await services.trends.add_signals(
            PROJECT_ID, trend.id, ["0002"], regenerate_summary=True
        )

        assert updated.summary == "2 related signals."
        assert len(services.summarizer.calls) == 2

    @pytest.mark.asyncio
    async def test_remove_signals(self, services):
        await services.seed_signals(3)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002", "0003"])

        updated = await services.trends.remove_signals(PROJECT_ID, trend.id, ["0003"])

        assert updated.signal_count == 2
        removed = await services.signal_repo.get(PROJECT_ID, "0003")
        assert removed.status == SignalStatus.PENDING

    @pytest.mark.asyncio
    async def test_remove_every_signal_rejected(self, services):
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        with pytest.raises(ValidationError):
            await services.trends.remove_signals(PROJECT_ID, trend.id, ["0001", "0002"])

        assert len(await members(services, trend.id)) == 2

    @pytest.mark.asyncio
    async def test_remove_non_member_rejected(self, services):
        await services.seed_signals(3)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        with pytest.raises(ValidationError):
            await services.trends.remove_signals(PROJECT_ID, trend.id, ["0003"])

    @pytest.mark.asyncio
    async def test_regenerate_summary(self):
        services = ServiceBundle(summarizer=MockSummarizer())
        await services.seed_signals(2)
        trend = await services.trends.create_trend(PROJECT_ID, ["0001", "0002"])

        regenerated = await services.trends.regenerate_summary(PROJECT_ID, trend.id)

        assert regenerated.title == "Sample signal number"
        assert regenerated.summary == "2 related signals."

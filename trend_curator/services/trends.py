"""
Trend assembly service.

Creates trends from reviewed signals, edits and dissolves them, and keeps
``signal_count`` equal to the live number of member signals.
"""

import logging
from typing import List, Optional, Sequence
from uuid import uuid4

from trend_curator.errors import (
    InconsistencyError,
    NotFoundError,
    SummaryGenerationError,
    TerminalStateError,
    ValidationError,
)
from trend_curator.observability.logging import audit_logger
from trend_curator.services.summarizer import FALLBACK_TITLE, TrendSummarizer
from trend_curator.services.trend_states import TrendLifecycle
from trend_curator.storage.interfaces import SignalRepository, StorageError, TrendRepository
from trend_curator.types import (
    GeneratedSummary,
    Signal,
    SignalStatus,
    Trend,
    TrendDetail,
    TrendList,
    TrendStatus,
    TrendUpdate,
    UndoResult,
    utcnow,
)

logger = logging.getLogger(__name__)


def _unique(ids: Sequence[str]) -> List[str]:
    """De-duplicate preserving first occurrence."""
    seen = set()
    result = []
    for signal_id in ids:
        if signal_id not in seen:
            seen.add(signal_id)
            result.append(signal_id)
    return result


def _describe(signals: Sequence[Signal]) -> str:
    return ", ".join(s.title or s.id for s in signals)


class TrendService:
    """
    Trend creation, editing and membership management.

    Example:
        ```python
        service = TrendService(signal_repo, trend_repo, summarizer)
        trend = await service.create_trend("proj_1", ["0001", "0004"])
        await service.update_trend("proj_1", trend.id, TrendUpdate(status="final"))
        ```
    """

    def __init__(
        self,
        signal_repo: SignalRepository,
        trend_repo: TrendRepository,
        summarizer: TrendSummarizer,
        lifecycle: Optional[TrendLifecycle] = None,
    ):
        self._signals = signal_repo
        self._trends = trend_repo
        self._summarizer = summarizer
        self._lifecycle = lifecycle or TrendLifecycle()

    # ========================================================================
    # Queries
    # ========================================================================

    async def list_trends(self, project_id: str, include_archived: bool = False) -> TrendList:
        trends = await self._trends.list(project_id, include_archived)
        return TrendList(trends=trends, total=len(trends))

    async def get_trend(self, project_id: str, trend_id: str) -> TrendDetail:
        trend = await self._require(project_id, trend_id)
        signals = await self._signals.list_by_trend(project_id, trend_id)
        return TrendDetail(trend=trend, signals=signals)

    # ========================================================================
    # Creation
    # ========================================================================

    async def create_trend(self, project_id: str, signal_ids: Sequence[str]) -> Trend:
        """
        Create a draft trend and combine every listed signal into it.

        Nothing is written until the summary has been generated. If the trend
        row is saved but its members cannot be flipped, InconsistencyError
        names both so the data can be reconciled; the trend is not removed.

        Raises:
            ValidationError: Empty id list
            NotFoundError: A listed signal does not exist
            TerminalStateError: A listed signal already belongs to a trend
            SummaryGenerationError: The summarizer failed
            InconsistencyError: Trend saved, member update failed
        """
        ids = _unique(signal_ids)
        if not ids:
            raise ValidationError("At least one signal is required to create a trend")

        signals = await self._load_signals(project_id, ids)
        combined = [s.id for s in signals if s.status == SignalStatus.COMBINED]
        if combined:
            raise TerminalStateError(
                f"Signals already belong to a trend: {', '.join(combined)}"
            )

        generated = await self._generate(project_id, [s.original_text for s in signals])

        trend = Trend(
            id=str(uuid4()),
            title=generated.title,
            summary=generated.summary,
            signal_count=len(ids),
            status=TrendStatus.DRAFT,
        )
        await self._trends.save(project_id, trend)

        note_line = f"Combined with signals: {_describe(signals)}"
        try:
            await self._signals.assign_to_trend(project_id, ids, trend.id, note_line)
        except StorageError as e:
            logger.error(
                f"Trend {project_id}/{trend.id} created but signals {ids} "
                f"could not be combined: {e}"
            )
            raise InconsistencyError(
                f"Trend {trend.id} was created but its signals could not be updated",
                trend_id=trend.id,
                signal_ids=ids,
            ) from e

        logger.info(f"Created trend {project_id}/{trend.id} '{trend.title}' from {len(ids)} signals")
        return trend

    # ========================================================================
    # Editing and lifecycle
    # ========================================================================

    async def update_trend(self, project_id: str, trend_id: str, payload: TrendUpdate) -> Trend:
        changes = payload.changes()
        if not changes:
            raise ValidationError("No fields to update")

        trend = await self._require(project_id, trend_id)
        transition = self._lifecycle.validate_update(trend, changes)

        updates = {}
        if "title" in changes:
            updates["title"] = changes["title"].strip()
        if "summary" in changes:
            updates["summary"] = changes["summary"]
        if "note" in changes:
            updates["note"] = changes["note"]
        if transition is not None:
            updates["status"] = transition.to_state
        updates["updated_at"] = utcnow()

        if not await self._trends.update(project_id, trend_id, updates):
            raise NotFoundError("Trend not found")
        if transition is not None:
            self._lifecycle.record(project_id, trend_id, transition)

        return await self._require(project_id, trend_id)

    async def undo_trend(self, project_id: str, trend_id: str) -> UndoResult:
        """Return every member to Pending and archive the trend."""
        trend = await self._require(project_id, trend_id)
        transition = self._lifecycle.validate_undo(trend)

        restored = await self._signals.release_trend(project_id, trend_id)
        await self._trends.update(
            project_id,
            trend_id,
            {"status": TrendStatus.ARCHIVED, "signal_count": 0, "updated_at": utcnow()},
        )
        self._lifecycle.record(project_id, trend_id, transition)

        logger.info(f"Undid trend {project_id}/{trend_id}, {restored} signals restored")
        return UndoResult(
            trend=await self._require(project_id, trend_id),
            signals_restored=restored,
        )

    async def delete_trend(self, project_id: str, trend_id: str) -> None:
        """Release members back to Pending and delete the trend row."""
        await self._require(project_id, trend_id)
        released = await self._signals.release_trend(project_id, trend_id)
        if not await self._trends.delete(project_id, trend_id):
            raise NotFoundError("Trend not found")
        audit_logger.log_deletion(project_id, "trend", trend_id)
        logger.info(f"Deleted trend {project_id}/{trend_id}, {released} signals released")

    async def regenerate_summary(self, project_id: str, trend_id: str) -> Trend:
        """Replace title and summary with a fresh pair from the live members."""
        trend = await self._require(project_id, trend_id)
        self._lifecycle.ensure_editable(trend)
        await self._resummarize(project_id, trend_id)
        return await self._require(project_id, trend_id)

    # ========================================================================
    # Membership
    # ========================================================================

    async def add_signals(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Sequence[str],
        regenerate_summary: bool = False,
    ) -> Trend:
        ids = _unique(signal_ids)
        if not ids:
            raise ValidationError("At least one signal is required")

        trend = await self._require(project_id, trend_id)
        self._lifecycle.ensure_editable(trend)

        signals = await self._load_signals(project_id, ids)
        foreign = [
            s.id for s in signals
            if s.status == SignalStatus.COMBINED and s.trend_id != trend_id
        ]
        if foreign:
            raise TerminalStateError(
                f"Signals already belong to another trend: {', '.join(foreign)}"
            )

        new_members = [s for s in signals if s.trend_id != trend_id]
        if new_members:
            note_line = f"Added to trend with signals: {_describe(new_members)}"
            await self._signals.assign_to_trend(
                project_id, [s.id for s in new_members], trend_id, note_line
            )
            await self._recount(project_id, trend_id)
            logger.info(f"Added {len(new_members)} signals to trend {project_id}/{trend_id}")

        if regenerate_summary:
            await self._resummarize(project_id, trend_id)
        return await self._require(project_id, trend_id)

    async def remove_signals(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Sequence[str],
        regenerate_summary: bool = False,
    ) -> Trend:
        ids = _unique(signal_ids)
        if not ids:
            raise ValidationError("At least one signal is required")

        trend = await self._require(project_id, trend_id)
        self._lifecycle.ensure_editable(trend)

        members = {s.id for s in await self._signals.list_by_trend(project_id, trend_id)}
        outsiders = [signal_id for signal_id in ids if signal_id not in members]
        if outsiders:
            raise ValidationError(
                f"Signals are not part of this trend: {', '.join(outsiders)}"
            )
        if members.issubset(ids):
            raise ValidationError(
                "Cannot remove every signal from a trend; undo the trend instead"
            )

        released = await self._signals.release_trend(project_id, trend_id, ids)
        await self._recount(project_id, trend_id)
        logger.info(f"Removed {released} signals from trend {project_id}/{trend_id}")

        if regenerate_summary:
            await self._resummarize(project_id, trend_id)
        return await self._require(project_id, trend_id)

    # ========================================================================
    # Private Methods
    # ========================================================================

    async def _require(self, project_id: str, trend_id: str) -> Trend:
        trend = await self._trends.get(project_id, trend_id)
        if trend is None:
            raise NotFoundError("Trend not found")
        return trend

    async def _load_signals(self, project_id: str, ids: List[str]) -> List[Signal]:
        """Fetch signals in the requested order; every id must exist."""
        by_id = {s.id: s for s in await self._signals.get_many(project_id, ids)}
        missing = [signal_id for signal_id in ids if signal_id not in by_id]
        if missing:
            raise NotFoundError(f"One or more signals not found: {', '.join(missing)}")
        return [by_id[signal_id] for signal_id in ids]

    async def _generate(self, project_id: str, texts: List[str]) -> GeneratedSummary:
        try:
            generated = await self._summarizer.generate(texts)
        except SummaryGenerationError as e:
            logger.error(f"Failed to generate trend summary for {project_id}: {e}")
            raise

        if not generated.title.strip():
            logger.warning(f"Generated trend title is empty for {project_id}, using fallback")
            generated = GeneratedSummary(title=FALLBACK_TITLE, summary=generated.summary)
        return generated

    async def _resummarize(self, project_id: str, trend_id: str) -> None:
        members = await self._signals.list_by_trend(project_id, trend_id)
        if not members:
            raise ValidationError("Trend has no signals")

        generated = await self._generate(project_id, [s.original_text for s in members])
        await self._trends.update(
            project_id,
            trend_id,
            {
                "title": generated.title.strip(),
                "summary": generated.summary,
                "updated_at": utcnow(),
            },
        )

    async def _recount(self, project_id: str, trend_id: str) -> None:
        count = await self._signals.count_by_trend(project_id, trend_id)
        await self._trends.update(
            project_id, trend_id, {"signal_count": count, "updated_at": utcnow()}
        )

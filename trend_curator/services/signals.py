"""
Signal access service.

Listing, CRUD and the next-unassigned query that drives the review queue.
"""

import logging
from typing import Dict, List, Optional

from trend_curator.errors import NotFoundError, TerminalStateError, ValidationError
from trend_curator.observability.logging import audit_logger
from trend_curator.storage.interfaces import SignalRepository, TrendRepository
from trend_curator.types import (
    NextUnassigned,
    Signal,
    SignalCreate,
    SignalFilter,
    SignalList,
    SignalStatus,
    SignalUpdate,
    SimilarSignal,
    utcnow,
)

logger = logging.getLogger(__name__)

ARCHIVE_NOTE_REQUIRED = (
    "Note is required when archiving a signal. Please provide a reason for archiving."
)


def format_signal_id(number: int) -> str:
    """Zero-pad to four digits (0001-9999); larger numbers are left unpadded."""
    return f"{number:04d}"


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class SignalService:
    """Signal CRUD and review-queue access for every project."""

    def __init__(self, signal_repo: SignalRepository, trend_repo: TrendRepository):
        self._signals = signal_repo
        self._trends = trend_repo

    async def list_signals(
        self, project_id: str, filters: Optional[SignalFilter] = None
    ) -> SignalList:
        filters = filters or SignalFilter()
        signals = await self._signals.search(project_id, filters)
        total = await self._signals.count(project_id, filters.status)
        unassigned = await self._signals.count(project_id, SignalStatus.PENDING)
        return SignalList(signals=signals, total=total, unassigned_count=unassigned)

    async def get_signal(self, project_id: str, signal_id: str) -> Signal:
        signal = await self._signals.get(project_id, signal_id)
        if signal is None:
            raise NotFoundError("Signal not found")
        return signal

    async def get_next_unassigned(
        self, project_id: str, exclude_id: Optional[str] = None
    ) -> NextUnassigned:
        """
        Oldest Pending signal with its scored candidates.

        ``exclude_id`` lets Skip move forward without changing any state. When
        no Pending signal remains the result has ``signal=None``.
        """
        signal = await self._signals.next_pending(project_id, exclude_id)
        if signal is None:
            remaining = await self._signals.count_pending(project_id, exclude_id)
            logger.info(f"No unassigned signal left in {project_id} (remaining={remaining})")
            return NextUnassigned(signal=None, similar_signals=[], remaining_count=remaining)

        similar = await self.get_similar_signals(project_id, signal.id)
        remaining = await self._signals.count_pending(project_id, signal.id)
        logger.debug(
            f"Next unassigned in {project_id}: {signal.id} "
            f"({len(similar)} candidates, {remaining} remaining)"
        )
        return NextUnassigned(signal=signal, similar_signals=similar, remaining_count=remaining)

    async def get_similar_signals(self, project_id: str, signal_id: str) -> List[SimilarSignal]:
        """
        Join the pipeline's stored scores with live signal rows and trend summaries.

        Candidates whose row no longer exists are dropped; the focal signal is
        never its own candidate.
        """
        scores = [
            s
            for s in await self._signals.get_similarity_scores(project_id, signal_id)
            if s.id != signal_id
        ]
        if not scores:
            return []

        score_map: Dict[str, float] = {}
        for entry in scores:
            score_map.setdefault(entry.id, entry.score)

        records = await self._signals.get_many(project_id, list(score_map))
        by_id = {record.id: record for record in records}

        trend_ids = sorted({r.trend_id for r in records if r.trend_id})
        summaries = {
            trend.id: trend.summary
            for trend in await self._trends.get_many(project_id, trend_ids)
        }

        similar = []
        for candidate_id, score in score_map.items():
            record = by_id.get(candidate_id)
            if record is None:
                continue
            similar.append(
                SimilarSignal(
                    id=record.id,
                    original_text=record.original_text,
                    title=record.title,
                    source=record.source,
                    note=record.note,
                    score=score,
                    status=record.status,
                    trend_id=record.trend_id,
                    trend_summary=summaries.get(record.trend_id) if record.trend_id else None,
                )
            )
        return similar

    async def create_signal(self, project_id: str, payload: SignalCreate) -> Signal:
        if payload.status == SignalStatus.COMBINED:
            raise ValidationError("Signals can only be combined by creating a trend")
        if payload.status == SignalStatus.ARCHIVED and _blank(payload.note):
            raise ValidationError(ARCHIVE_NOTE_REQUIRED)

        signal_id = format_signal_id(await self._signals.max_numeric_id(project_id) + 1)
        signal = Signal(
            id=signal_id,
            original_text=payload.description,
            title=payload.title or None,
            source=payload.source or None,
            note=payload.note or None,
            status=payload.status,
        )
        await self._signals.save(project_id, signal)
        logger.info(f"Created signal {project_id}/{signal_id}")
        return signal

    async def update_signal(
        self, project_id: str, signal_id: str, payload: SignalUpdate
    ) -> Signal:
        """
        Apply a partial update.

        Raises:
            ValidationError: Nothing to update, empty description, archive
                without a note, or an attempt to set Combined directly
            TerminalStateError: Changing the status of a Combined signal
            NotFoundError: Unknown signal
        """
        changes = payload.changes()
        if not changes:
            raise ValidationError("No fields to update")

        current = await self.get_signal(project_id, signal_id)

        updates = {}
        if "description" in changes:
            if _blank(changes["description"]):
                raise ValidationError("Description cannot be empty")
            updates["original_text"] = changes["description"]
        if "title" in changes:
            updates["title"] = changes["title"]
        if "source" in changes:
            updates["source"] = changes["source"] or None
        if "note" in changes:
            updates["note"] = changes["note"]

        status = changes.get("status")
        if "status" in changes and status is None:
            raise ValidationError("Status cannot be null")
        if status is not None and status != current.status:
            if status == SignalStatus.COMBINED:
                raise ValidationError("Signals can only be combined by creating a trend")
            if current.status == SignalStatus.COMBINED:
                raise TerminalStateError(
                    "Signal belongs to a trend; remove it from the trend first"
                )
            updates["status"] = status

        # Archived rows must keep a note
        resulting_status = updates.get("status", current.status)
        resulting_note = updates.get("note", current.note)
        if resulting_status == SignalStatus.ARCHIVED and _blank(resulting_note):
            raise ValidationError(ARCHIVE_NOTE_REQUIRED)

        updates["updated_at"] = utcnow()
        if not await self._signals.update(project_id, signal_id, updates):
            raise NotFoundError("Signal not found")

        if updates.get("status") == SignalStatus.ARCHIVED:
            audit_logger.log_signal_archived(
                project_id, signal_id, updates.get("note", current.note) or ""
            )

        return await self.get_signal(project_id, signal_id)

    async def archive_signal(self, project_id: str, signal_id: str, note: str) -> Signal:
        """Archive a Pending signal with a justification note."""
        if _blank(note):
            raise ValidationError(ARCHIVE_NOTE_REQUIRED)
        return await self.update_signal(
            project_id, signal_id, SignalUpdate(status=SignalStatus.ARCHIVED, note=note)
        )

    async def delete_signal(self, project_id: str, signal_id: str) -> None:
        """
        Delete a signal; a trend it belonged to is recounted.

        Raises:
            ValidationError: The signal is the last member of its trend
            NotFoundError: Unknown signal
        """
        current = await self.get_signal(project_id, signal_id)
        if current.trend_id:
            members = await self._signals.count_by_trend(project_id, current.trend_id)
            if members <= 1:
                raise ValidationError(
                    "Cannot delete the last signal of a trend; undo the trend instead"
                )

        if not await self._signals.delete(project_id, signal_id):
            raise NotFoundError("Signal not found")

        if current.trend_id:
            count = await self._signals.count_by_trend(project_id, current.trend_id)
            await self._trends.update(
                project_id,
                current.trend_id,
                {"signal_count": count, "updated_at": utcnow()},
            )
        audit_logger.log_deletion(project_id, "signal", signal_id)

"""
Server-side processing status service.

Owns the per-project progress record: pipeline workers report counters and
phases through it, the API reads it, and resume / retry are forwarded to the
pipeline runner.
"""

import logging
from typing import Optional

from trend_curator.errors import NotFoundError, PipelineTriggerError, ValidationError
from trend_curator.processing.runner import PipelineRunner
from trend_curator.processing.status import with_derived_fields
from trend_curator.storage.interfaces import ProcessingStatusRepository
from trend_curator.types import ProcessingPhase, ProcessingStatus, RetryResult, utcnow

logger = logging.getLogger(__name__)

COUNTER_FIELDS = (
    "embeddings_complete",
    "embedding_similarities_complete",
    "claude_verifications_complete",
    "claude_verification_failures",
)


class ProcessingStatusService:
    """Reads and advances the processing status of each project."""

    def __init__(
        self,
        status_repo: ProcessingStatusRepository,
        runner: Optional[PipelineRunner] = None,
    ):
        self._repo = status_repo
        self._runner = runner

    async def get_status(self, project_id: str) -> ProcessingStatus:
        """Current status with label, percentage and time estimate filled in."""
        status = await self._require(project_id)
        return with_derived_fields(status)

    async def initialize(self, project_id: str, total_signals: int) -> ProcessingStatus:
        """Start a fresh record after an import of ``total_signals`` signals."""
        if total_signals < 0:
            raise ValidationError("total_signals cannot be negative")
        status = ProcessingStatus(
            status=ProcessingPhase.PENDING,
            total_signals=total_signals,
            started_at=utcnow(),
        )
        await self._repo.save(project_id, status)
        logger.info(f"Initialized processing status for {project_id} ({total_signals} signals)")
        return with_derived_fields(status)

    async def record_progress(
        self,
        project_id: str,
        phase: Optional[ProcessingPhase] = None,
        embeddings_complete: Optional[int] = None,
        embedding_similarities_complete: Optional[int] = None,
        claude_verifications_complete: Optional[int] = None,
        claude_verification_failures: Optional[int] = None,
    ) -> ProcessingStatus:
        """
        Apply a progress report from a pipeline worker.

        Counters only move forward; a report that would decrease one is
        rejected as a whole.

        Raises:
            ValidationError: If a counter would decrease
            NotFoundError: If the project has no status record
        """
        current = await self._require(project_id)
        reported = {
            "embeddings_complete": embeddings_complete,
            "embedding_similarities_complete": embedding_similarities_complete,
            "claude_verifications_complete": claude_verifications_complete,
            "claude_verification_failures": claude_verification_failures,
        }

        updates = {}
        for field in COUNTER_FIELDS:
            value = reported[field]
            if value is None:
                continue
            if value < getattr(current, field):
                raise ValidationError(
                    f"{field} cannot decrease ({getattr(current, field)} -> {value})"
                )
            updates[field] = value

        if phase is not None and phase != current.status:
            updates["status"] = phase
            if phase == ProcessingPhase.COMPLETE:
                updates["completed_at"] = utcnow()
            if phase != ProcessingPhase.ERROR:
                updates["error_message"] = None

        if updates:
            await self._repo.update(project_id, updates)
            logger.debug(f"Processing progress for {project_id}: {updates}")
        return await self.get_status(project_id)

    async def mark_error(self, project_id: str, message: str) -> ProcessingStatus:
        await self._require(project_id)
        await self._repo.update(
            project_id, {"status": ProcessingPhase.ERROR, "error_message": message}
        )
        logger.warning(f"Processing failed for {project_id}: {message}")
        return await self.get_status(project_id)

    async def resume(self, project_id: str) -> bool:
        """
        Queue processing from the last checkpoint.

        An ``error`` status is cleared back to ``pending`` first and restored
        if the pipeline cannot be reached.

        Returns:
            False if processing had already completed, True if queued
        """
        runner = self._require_runner()
        status = await self._require(project_id)
        if status.status == ProcessingPhase.COMPLETE:
            logger.info(f"Processing already complete for {project_id}")
            return False

        if status.status == ProcessingPhase.ERROR:
            await self._repo.update(
                project_id, {"status": ProcessingPhase.PENDING, "error_message": None}
            )

        try:
            await runner.resume(project_id)
        except Exception:
            if status.status == ProcessingPhase.ERROR:
                await self._repo.update(
                    project_id,
                    {"status": ProcessingPhase.ERROR, "error_message": status.error_message},
                )
            raise
        return True

    async def retry_verifications(self, project_id: str) -> RetryResult:
        runner = self._require_runner()
        await self._require(project_id)
        return await runner.retry_verifications(project_id)

    def _require_runner(self) -> PipelineRunner:
        if self._runner is None:
            raise PipelineTriggerError("Processing pipeline not configured")
        return self._runner

    async def _require(self, project_id: str) -> ProcessingStatus:
        status = await self._repo.get(project_id)
        if status is None:
            raise NotFoundError("Processing status not found")
        return status

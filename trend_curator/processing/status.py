"""
Processing status model helpers.

``is_complete`` is the single completion predicate for the scoring pipeline.
The named phase can lag behind the counters (a worker may finish every unit of
work without writing ``complete``), so the counters are checked independently
of the phase name.
"""

from datetime import datetime
from typing import Optional

from trend_curator.types import ProcessingPhase, ProcessingStatus, utcnow

TERMINAL_PHASES = frozenset({ProcessingPhase.COMPLETE, ProcessingPhase.ERROR})

PHASE_LABELS = {
    ProcessingPhase.PENDING: "Pending",
    ProcessingPhase.EMBEDDINGS: "Generating Embeddings",
    ProcessingPhase.EMBEDDING_SIMILARITIES: "Calculating Similarities",
    ProcessingPhase.CLAUDE_VERIFICATION: "Verifying with Claude",
    ProcessingPhase.COMPLETE: "Complete",
    ProcessingPhase.ERROR: "Error",
}


def counters_complete(status: ProcessingStatus) -> bool:
    """True when every phase counter has reached the signal total."""
    total = status.total_signals
    if total <= 0:
        return False
    return (
        status.embeddings_complete >= total
        and status.embedding_similarities_complete >= total
        and status.claude_verifications_complete >= total
    )


def is_complete(status: Optional[ProcessingStatus]) -> bool:
    """
    Whether review may begin.

    True when the phase is ``complete`` or ``error`` (partial results are
    still reviewable), or when all three counters have reached the total even
    though the phase still names an in-progress step.
    """
    if status is None:
        return False
    if status.status in TERMINAL_PHASES:
        return True
    return counters_complete(status)


def percent_complete(status: ProcessingStatus) -> int:
    """Overall progress across the three phases, 0-100."""
    total = status.total_signals
    if total <= 0:
        return 0
    done = (
        min(status.embeddings_complete, total)
        + min(status.embedding_similarities_complete, total)
        + min(status.claude_verifications_complete, total)
    )
    return round(done / (total * 3) * 100)


def phase_label(phase: ProcessingPhase) -> str:
    return PHASE_LABELS.get(phase, phase.value)


def estimate_seconds_remaining(
    status: ProcessingStatus, now: Optional[datetime] = None
) -> Optional[int]:
    """
    Linear estimate of the time left, from the rate observed since start.

    Returns None when processing has not started, has finished, or has made
    no measurable progress yet.
    """
    if status.started_at is None or is_complete(status):
        return None

    percent = percent_complete(status)
    if percent <= 0:
        return None

    now = now or utcnow()
    elapsed = (now - status.started_at).total_seconds()
    if elapsed <= 0:
        return None

    return round(elapsed * (100 - percent) / percent)


def with_derived_fields(
    status: ProcessingStatus, now: Optional[datetime] = None
) -> ProcessingStatus:
    """Fill in label, percentage and estimate from the raw counters."""
    return status.model_copy(
        update={
            "current_phase": phase_label(status.status),
            "percent_complete": percent_complete(status),
            "estimated_seconds_remaining": estimate_seconds_remaining(status, now),
        }
    )

"""
Trend lifecycle management.

Trends move through draft → final → retired / archived. Retired and archived
trends are terminal: they can be read but not edited, regenerated or have
their membership changed. ``final`` can be reopened to ``draft``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from trend_curator.errors import TerminalStateError, ValidationError
from trend_curator.observability.logging import audit_logger
from trend_curator.observability.metrics import trend_transitions_total
from trend_curator.types import Trend, TrendStatus, utcnow

logger = logging.getLogger(__name__)


TERMINAL_STATES = frozenset({TrendStatus.RETIRED, TrendStatus.ARCHIVED})
UNDOABLE_STATES = frozenset({TrendStatus.DRAFT, TrendStatus.FINAL})

ALLOWED_TRANSITIONS = {
    TrendStatus.DRAFT: frozenset({TrendStatus.FINAL, TrendStatus.RETIRED, TrendStatus.ARCHIVED}),
    TrendStatus.FINAL: frozenset({TrendStatus.DRAFT, TrendStatus.RETIRED, TrendStatus.ARCHIVED}),
    TrendStatus.RETIRED: frozenset(),
    TrendStatus.ARCHIVED: frozenset(),
}

NOTE_REQUIRED = frozenset({TrendStatus.RETIRED, TrendStatus.ARCHIVED})


# ============================================================================
# State Transition Record
# ============================================================================


class StateTransition:
    """Record of an accepted state transition."""

    def __init__(
        self,
        from_state: TrendStatus,
        to_state: TrendStatus,
        timestamp: Optional[datetime] = None,
        note: Optional[str] = None,
    ):
        self.from_state = from_state
        self.to_state = to_state
        self.timestamp = timestamp or utcnow()
        self.note = note

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp.isoformat(),
            "note": self.note,
        }

    def __repr__(self) -> str:
        return f"StateTransition({self.from_state.value} -> {self.to_state.value})"


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


# ============================================================================
# Lifecycle Engine
# ============================================================================


class TrendLifecycle:
    """
    Validates and records trend lifecycle transitions.

    Validation never touches storage; callers check first and persist
    afterwards, so a rejected request leaves the trend unchanged.
    """

    @staticmethod
    def is_terminal(status: TrendStatus) -> bool:
        return status in TERMINAL_STATES

    def ensure_editable(self, trend: Trend) -> None:
        """
        Raises:
            TerminalStateError: If the trend is retired or archived
        """
        if self.is_terminal(trend.status):
            raise TerminalStateError(
                f"Trend is {trend.status.value} and can no longer be modified"
            )

    def validate_update(
        self, trend: Trend, changes: Dict[str, Any]
    ) -> Optional[StateTransition]:
        """
        Check a partial update against the current trend as a whole.

        Args:
            trend: Current trend
            changes: Fields supplied by the caller (title, summary, status, note)

        Returns:
            The transition the update implies, or None if the status is
            unchanged or omitted

        Raises:
            TerminalStateError: If the trend is terminal or the move is illegal
            ValidationError: If a required title or note is missing
        """
        self.ensure_editable(trend)

        if "title" in changes and _blank(changes["title"]):
            raise ValidationError("Title cannot be empty")
        if "summary" in changes and changes["summary"] is None:
            raise ValidationError("Summary cannot be null")

        if "status" not in changes:
            return None

        target = changes["status"]
        if target is None:
            raise ValidationError("Status cannot be null")
        target = TrendStatus(target)
        if target == trend.status:
            return None

        if target not in ALLOWED_TRANSITIONS[trend.status]:
            raise TerminalStateError(
                f"Cannot move trend from {trend.status.value} to {target.value}"
            )

        title = changes.get("title", trend.title)
        if target == TrendStatus.FINAL and _blank(title):
            raise ValidationError("A title is required to finalize a trend")

        note = changes["note"] if "note" in changes else trend.note
        if target in NOTE_REQUIRED and _blank(note):
            raise ValidationError(f"A note is required to move a trend to {target.value}")

        return StateTransition(trend.status, target, note=note)

    def validate_undo(self, trend: Trend) -> StateTransition:
        """
        Undo dissolves a draft or final trend and archives it.

        Raises:
            TerminalStateError: If the trend is already retired or archived
        """
        if trend.status not in UNDOABLE_STATES:
            raise TerminalStateError(
                f"Cannot undo a trend that is {trend.status.value}"
            )
        return StateTransition(trend.status, TrendStatus.ARCHIVED, note="undo")

    def record(self, project_id: str, trend_id: str, transition: StateTransition) -> None:
        """Count and audit an accepted, persisted transition."""
        trend_transitions_total.labels(
            from_state=transition.from_state.value,
            to_state=transition.to_state.value,
        ).inc()
        audit_logger.log_trend_transition(
            project_id,
            trend_id,
            transition.from_state.value,
            transition.to_state.value,
            transition.note,
        )
        logger.info(
            f"Trend {project_id}/{trend_id}: "
            f"{transition.from_state.value} -> {transition.to_state.value}"
        )

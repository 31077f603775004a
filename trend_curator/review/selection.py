"""
Similarity candidate ranking and selection.

Pipeline scores come in two scales: verification scores from 1 to 10 and
cosine similarities from 0 to 1. Both are normalized to a 0-100 percentage
before ranking or display.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set

from trend_curator import config
from trend_curator.types import SignalStatus, SimilarSignal


def normalize_score(score: float) -> float:
    """
    Map a pipeline score to a percentage.

    Scores above 1 are on the 1-10 verification scale; 1 and below are cosine
    similarities, so ``1.0`` means 100%.
    """
    if score > 1:
        return score / 10 * 100
    return score * 100


def score_band(percent: float, bands: Optional[Dict[str, float]] = None) -> str:
    """Classify a normalized score as "high", "medium" or "low"."""
    bands = bands or config.get_score_bands()
    if percent >= bands["high"]:
        return "high"
    if percent >= bands["medium"]:
        return "medium"
    return "low"


def rank_candidates(candidates: Iterable[SimilarSignal]) -> List[SimilarSignal]:
    """Sort by normalized score descending; ties fall back to id for a stable order."""
    return sorted(candidates, key=lambda c: (-normalize_score(c.score), c.id))


class SimilaritySelection:
    """
    The ranked candidates for one focal signal and the user's picks.

    The focal signal is always part of a trend created from this selection and
    is never one of the toggleable candidates. Candidates that already belong
    to a trend cannot be picked.
    """

    def __init__(
        self,
        focal_id: str,
        candidates: Sequence[SimilarSignal],
        hide_reviewed: Optional[bool] = None,
        score_bands: Optional[Dict[str, float]] = None,
    ):
        self.focal_id = focal_id
        if hide_reviewed is None:
            hide_reviewed = config.hide_reviewed_candidates()
        self.hide_reviewed = hide_reviewed
        self.score_bands = score_bands or config.get_score_bands()

        ranked = rank_candidates(c for c in candidates if c.id != focal_id)
        self._all = ranked
        self._selected: Set[str] = set()

    @property
    def candidates(self) -> List[SimilarSignal]:
        """Visible candidates; with hide_reviewed only Pending ones."""
        if self.hide_reviewed:
            return [c for c in self._all if c.status == SignalStatus.PENDING]
        return list(self._all)

    @property
    def selected_ids(self) -> List[str]:
        """Picked candidates in ranking order."""
        return [c.id for c in self._all if c.id in self._selected]

    def is_selectable(self, candidate_id: str) -> bool:
        for candidate in self.candidates:
            if candidate.id == candidate_id:
                return candidate.status != SignalStatus.COMBINED
        return False

    def is_selected(self, candidate_id: str) -> bool:
        return candidate_id in self._selected

    def toggle(self, candidate_id: str) -> bool:
        """
        Flip a candidate in or out of the selection.

        Returns:
            Whether the candidate is selected afterwards

        Raises:
            ValueError: If the id is not a selectable candidate
        """
        if candidate_id in self._selected:
            self._selected.discard(candidate_id)
            return False
        if not self.is_selectable(candidate_id):
            raise ValueError(f"Signal {candidate_id} cannot be selected")
        self._selected.add(candidate_id)
        return True

    def clear(self) -> None:
        self._selected.clear()

    def trend_signal_ids(self) -> List[str]:
        """Focal signal first, then the picked candidates."""
        return [self.focal_id] + self.selected_ids

    def percent(self, candidate: SimilarSignal) -> int:
        return round(normalize_score(candidate.score))

    def band(self, candidate: SimilarSignal) -> str:
        return score_band(self.percent(candidate), self.score_bands)

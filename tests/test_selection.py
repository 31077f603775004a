"""
Unit tests for score normalization, candidate ranking and selection.
"""

import pytest

from tests.fixtures import create_similar_signal
from trend_curator.review.selection import (
    SimilaritySelection,
    normalize_score,
    rank_candidates,
    score_band,
)
from trend_curator.types import SignalStatus


class TestNormalizeScore:

    @pytest.mark.parametrize(
        "score,expected",
        [
            (8, 80),
            (10, 100),
            (0.8, 80),
            (1.0, 100),
            (0.0, 0),
        ],
    )
    def test_both_scales(self, score, expected):
        assert normalize_score(score) == pytest.approx(expected)

    def test_score_band(self):
        bands = {"high": 80, "medium": 60}

        assert score_band(80, bands) == "high"
        assert score_band(79.9, bands) == "medium"
        assert score_band(10, bands) == "low"


class TestRanking:

    def test_mixed_scales_rank_by_percentage(self):
        candidates = [
            create_similar_signal("0002", 0.7),
            create_similar_signal("0003", 9),
            create_similar_signal("0004", 8),
        ]

        ranked = rank_candidates(candidates)

        assert [c.id for c in ranked] == ["0003", "0004", "0002"]

    def test_ties_break_on_id(self):
        """8 on the verification scale and 0.8 cosine are both 80%."""
        candidates = [
            create_similar_signal("0009", 8),
            create_similar_signal("0005", 0.8),
        ]

        assert [c.id for c in rank_candidates(candidates)] == ["0005", "0009"]

    def test_ranking_is_stable_across_calls(self):
        candidates = [create_similar_signal(f"{n:04d}", 0.5) for n in (7, 3, 5)]

        assert rank_candidates(candidates) == rank_candidates(list(reversed(candidates)))


@pytest.fixture
def selection():
    return SimilaritySelection(
        "0001",
        [
            create_similar_signal("0001", 1.0),
            create_similar_signal("0002", 0.9),
            create_similar_signal("0003", 7, SignalStatus.COMBINED, trend_id="t1"),
            create_similar_signal("0004", 0.5, SignalStatus.ARCHIVED),
        ],
        hide_reviewed=False,
    )


class TestSimilaritySelection:

    def test_focal_signal_is_not_a_candidate(self, selection):
        assert "0001" not in [c.id for c in selection.candidates]

    def test_candidates_are_ranked(self, selection):
        assert [c.id for c in selection.candidates] == ["0002", "0003", "0004"]

    def test_combined_candidates_are_not_selectable(self, selection):
        assert selection.is_selectable("0003") is False
        with pytest.raises(ValueError):
            selection.toggle("0003")

    def test_toggle(self, selection):
        assert selection.toggle("0004") is True
        assert selection.toggle("0002") is True
        assert selection.selected_ids == ["0002", "0004"]

        assert selection.toggle("0004") is False
        assert selection.selected_ids == ["0002"]

    def test_trend_signal_ids_start_with_focal(self, selection):
        selection.toggle("0002")

        assert selection.trend_signal_ids() == ["0001", "0002"]

    def test_clear(self, selection):
        selection.toggle("0002")
        selection.clear()

        assert selection.selected_ids == []
        assert selection.trend_signal_ids() == ["0001"]

    def test_hide_reviewed_shows_only_pending(self):
        selection = SimilaritySelection(
            "0001",
            [
                create_similar_signal("0002", 0.9),
                create_similar_signal("0003", 0.8, SignalStatus.ARCHIVED),
            ],
            hide_reviewed=True,
        )

        assert [c.id for c in selection.candidates] == ["0002"]
        assert selection.is_selectable("0003") is False

    def test_percent(self, selection):
        assert selection.percent(create_similar_signal("0002", 7)) == 70

    def test_band_uses_configured_thresholds(self):
        selection = SimilaritySelection(
            "0001",
            [create_similar_signal("0002", 0.85), create_similar_signal("0003", 9)],
            hide_reviewed=False,
            score_bands={"high": 90, "medium": 50},
        )

        bands = {c.id: selection.band(c) for c in selection.candidates}

        assert bands == {"0002": "medium", "0003": "high"}

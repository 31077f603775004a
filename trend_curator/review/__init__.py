"""
Client-side review workflow: session, candidate selection, the review
orchestrator and the upload flow.
"""

from trend_curator.review.orchestrator import ReviewOrchestrator, ReviewState
from trend_curator.review.selection import (
    SimilaritySelection,
    normalize_score,
    rank_candidates,
    score_band,
)
from trend_curator.review.session import ProjectSession
from trend_curator.review.upload import UploadFlow, UploadState

__all__ = [
    "ProjectSession",
    "ReviewOrchestrator",
    "ReviewState",
    "SimilaritySelection",
    "UploadFlow",
    "UploadState",
    "normalize_score",
    "rank_candidates",
    "score_band",
]

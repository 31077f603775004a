"""
Mock summarizer for testing.

Produces deterministic titles and summaries without calling a model.
"""

from typing import List, Optional, Sequence

from trend_curator.errors import SummaryGenerationError
from trend_curator.types import GeneratedSummary


class MockSummarizer:
    """Summarizer returning a fixed pair, or one derived from the input texts."""

    def __init__(
        self,
        title: Optional[str] = None,
        summary: Optional[str] = None,
        fail: bool = False,
    ):
        self.title = title
        self.summary = summary
        self.fail = fail
        self.calls: List[List[str]] = []

    async def generate(self, texts: Sequence[str]) -> GeneratedSummary:
        self.calls.append(list(texts))
        if self.fail:
            raise SummaryGenerationError("Failed to generate summary")

        title = self.title if self.title is not None else " ".join(texts[0].split()[:3])
        summary = self.summary if self.summary is not None else f"{len(texts)} related signals."
        return GeneratedSummary(title=title, summary=summary)

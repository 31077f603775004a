"""
Server-side services for Trend Curator.

- Signal access and the review queue
- Trend assembly and membership
- Trend lifecycle transitions
- Trend summarization (Anthropic Claude)
"""

from trend_curator.services.signals import SignalService
from trend_curator.services.summarizer import AnthropicTrendSummarizer, TrendSummarizer
from trend_curator.services.trend_states import StateTransition, TrendLifecycle
from trend_curator.services.trends import TrendService

__all__ = [
    "SignalService",
    "TrendService",
    "TrendLifecycle",
    "StateTransition",
    "TrendSummarizer",
    "AnthropicTrendSummarizer",
]

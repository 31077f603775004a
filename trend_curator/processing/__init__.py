"""
Processing status: the completion predicate, the server-side status service,
the pipeline trigger and the client-side poller.
"""

from trend_curator.processing.status import (
    estimate_seconds_remaining,
    is_complete,
    percent_complete,
    phase_label,
)

__all__ = [
    "estimate_seconds_remaining",
    "is_complete",
    "percent_complete",
    "phase_label",
]

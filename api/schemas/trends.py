"""
Request and response bodies for trend endpoints.
"""

from typing import List

from pydantic import Field

from trend_curator.types import CamelModel, Trend


class TrendCreateRequest(CamelModel):
    """Signals to combine into a new trend; the first is the focal signal."""

    signal_ids: List[str] = Field(..., min_length=1, description="Member signal ids")

    class Config:
        json_schema_extra = {"example": {"signalIds": ["0001", "0004", "0007"]}}


class MembershipRequest(CamelModel):
    """Signals to add to or remove from an existing trend."""

    signal_ids: List[str] = Field(..., min_length=1, description="Signal ids")
    regenerate_summary: bool = Field(
        False, description="Regenerate title and summary afterwards"
    )


class TrendResponse(CamelModel):
    """Envelope for endpoints returning a single trend."""

    trend: Trend

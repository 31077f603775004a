"""
Shared type definitions for Trend Curator.

These pydantic models are the contract between the storage layer, the
services, the REST API and the review client. On the wire every field is
camelCase (``originalText``, ``signalCount``); Python code uses snake_case and
both spellings are accepted on input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class SignalStatus(str, Enum):
    """Review status of a signal."""

    PENDING = "Pending"  # Imported, not yet reviewed
    COMBINED = "Combined"  # Member of a trend
    ARCHIVED = "Archived"  # Dismissed with a note


class TrendStatus(str, Enum):
    """Lifecycle state of a curated trend."""

    DRAFT = "draft"
    FINAL = "final"
    RETIRED = "retired"
    ARCHIVED = "archived"


class ProcessingPhase(str, Enum):
    """Phase of the external scoring pipeline for one project."""

    PENDING = "pending"
    EMBEDDINGS = "embeddings"
    EMBEDDING_SIMILARITIES = "embedding_similarities"
    CLAUDE_VERIFICATION = "claude_verification"
    COMPLETE = "complete"
    ERROR = "error"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ProcessingPhase"]:
        # Older pipeline workers write the singular phase names.
        legacy = {
            "embedding": cls.EMBEDDINGS,
            "embedding_similarity": cls.EMBEDDING_SIMILARITIES,
        }
        if isinstance(value, str):
            return legacy.get(value)
        return None


# ============================================================================
# Base model
# ============================================================================


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ============================================================================
# Signals
# ============================================================================


class Signal(CamelModel):
    """One imported unit of text considered for trend membership."""

    id: str
    original_text: str
    title: Optional[str] = None
    source: Optional[str] = None
    note: Optional[str] = None
    status: SignalStatus = SignalStatus.PENDING
    trend_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_trend_link(self) -> "Signal":
        if (self.status == SignalStatus.COMBINED) != (self.trend_id is not None):
            raise ValueError("trendId must be set if and only if status is Combined")
        return self


class SimilarityScore(CamelModel):
    """A candidate id and its score as stored by the pipeline."""

    id: str
    score: float


class SimilarSignal(CamelModel):
    """Read-only projection of a signal scored against a focal signal."""

    id: str
    original_text: str
    title: Optional[str] = None
    source: Optional[str] = None
    note: Optional[str] = None
    score: float
    status: SignalStatus
    trend_id: Optional[str] = None
    trend_summary: Optional[str] = None


class SignalFilter(CamelModel):
    """Filter criteria for listing signals."""

    status: Optional[SignalStatus] = None
    limit: int = Field(50, ge=1, le=1000)
    offset: int = Field(0, ge=0)


class SignalCreate(CamelModel):
    """Payload for creating a signal by hand."""

    description: str = Field(..., min_length=1)
    title: Optional[str] = None
    source: Optional[str] = None
    status: SignalStatus = SignalStatus.PENDING
    note: Optional[str] = None


class SignalUpdate(CamelModel):
    """Partial update of a signal; omitted fields are left untouched."""

    description: Optional[str] = None
    title: Optional[str] = None
    source: Optional[str] = None
    status: Optional[SignalStatus] = None
    note: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class SignalList(CamelModel):
    signals: List[Signal]
    total: int
    unassigned_count: int


class NextUnassigned(CamelModel):
    """The next Pending signal with its ranked candidates."""

    signal: Optional[Signal] = None
    similar_signals: List[SimilarSignal] = Field(default_factory=list)
    remaining_count: int = 0


# ============================================================================
# Trends
# ============================================================================


class Trend(CamelModel):
    """A curated group of signals with a generated summary."""

    id: str
    title: str
    summary: str
    note: Optional[str] = None
    signal_count: int = 0
    status: TrendStatus = TrendStatus.DRAFT
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class TrendUpdate(CamelModel):
    """Partial update of a trend; omitted fields are left untouched."""

    title: Optional[str] = None
    summary: Optional[str] = None
    status: Optional[TrendStatus] = None
    note: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class TrendList(CamelModel):
    trends: List[Trend]
    total: int


class TrendDetail(CamelModel):
    trend: Trend
    signals: List[Signal] = Field(default_factory=list)


class UndoResult(CamelModel):
    trend: Trend
    signals_restored: int


class GeneratedSummary(CamelModel):
    """Title and summary produced by the summarizer."""

    title: str
    summary: str


# ============================================================================
# Processing status
# ============================================================================


class ProcessingStatus(CamelModel):
    """Progress of the scoring pipeline for one project."""

    status: ProcessingPhase = ProcessingPhase.PENDING
    total_signals: int = Field(0, ge=0)
    embeddings_complete: int = Field(0, ge=0)
    embedding_similarities_complete: int = Field(0, ge=0)
    claude_verifications_complete: int = Field(0, ge=0)
    claude_verification_failures: int = Field(0, ge=0)
    current_phase: Optional[str] = None
    percent_complete: int = Field(0, ge=0, le=100)
    estimated_seconds_remaining: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class RetryResult(CamelModel):
    retried: int = 0
    succeeded: int = 0


# ============================================================================
# Upload
# ============================================================================


class ColumnMappings(CamelModel):
    """Spreadsheet column chosen for each signal field."""

    description: Optional[str] = None
    title: Optional[str] = None
    source: Optional[str] = None
    status: Optional[str] = None
    id: Optional[str] = None
    note: Optional[str] = None


class UploadPreview(CamelModel):
    columns: List[str] = Field(default_factory=list)
    detected_mappings: ColumnMappings = Field(default_factory=ColumnMappings)
    sample_rows: List[Dict[str, Any]] = Field(default_factory=list)


class UploadResult(CamelModel):
    success: bool
    signal_count: int = 0
    processing_started: bool = False
    estimated_minutes: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)

"""
Storage layer interface contracts.

Repositories are scoped by ``project_id``; one database holds every project.
Concrete implementations live in ``postgres.py``; the test suite provides
in-memory versions in ``tests/mocks/storage.py``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from trend_curator.types import (
    ProcessingStatus,
    Signal,
    SignalFilter,
    SignalStatus,
    SimilarityScore,
    Trend,
)


# ============================================================================
# Repository Interfaces
# ============================================================================


class SignalRepository(ABC):
    """Interface for signal persistence operations."""

    @abstractmethod
    async def save(self, project_id: str, signal: Signal) -> str:
        """
        Insert a new signal.

        Returns:
            Id of the saved signal

        Raises:
            IntegrityError: If the id already exists
        """
        pass

    @abstractmethod
    async def get(self, project_id: str, signal_id: str) -> Optional[Signal]:
        pass

    @abstractmethod
    async def get_many(self, project_id: str, signal_ids: Sequence[str]) -> List[Signal]:
        """Fetch the listed signals; unknown ids are silently absent."""
        pass

    @abstractmethod
    async def search(self, project_id: str, filters: SignalFilter) -> List[Signal]:
        """List signals oldest first, filtered by status, paged."""
        pass

    @abstractmethod
    async def count(self, project_id: str, status: Optional[SignalStatus] = None) -> int:
        pass

    @abstractmethod
    async def next_pending(
        self, project_id: str, exclude_id: Optional[str] = None
    ) -> Optional[Signal]:
        """
        Oldest Pending signal, ordered by created_at then id.

        Args:
            exclude_id: Never return this id, even if it is Pending
        """
        pass

    @abstractmethod
    async def count_pending(self, project_id: str, exclude_id: Optional[str] = None) -> int:
        pass

    @abstractmethod
    async def get_similarity_scores(
        self, project_id: str, signal_id: str
    ) -> List[SimilarityScore]:
        """Candidate ids and scores written by the pipeline (empty if none)."""
        pass

    @abstractmethod
    async def max_numeric_id(self, project_id: str) -> int:
        """Largest all-digit signal id in the project, 0 if there is none."""
        pass

    @abstractmethod
    async def update(self, project_id: str, signal_id: str, updates: Dict[str, Any]) -> bool:
        """
        Update columns of one signal.

        Returns:
            True if updated, False if not found
        """
        pass

    @abstractmethod
    async def delete(self, project_id: str, signal_id: str) -> bool:
        pass

    @abstractmethod
    async def assign_to_trend(
        self,
        project_id: str,
        signal_ids: Sequence[str],
        trend_id: str,
        note_line: Optional[str] = None,
    ) -> int:
        """
        Flip every listed signal to Combined with ``trend_id``.

        All or nothing: if any id is missing or already Combined, no row is
        changed and IntegrityError is raised. ``note_line`` is appended to each
        signal's note.

        Returns:
            Number of signals flipped
        """
        pass

    @abstractmethod
    async def release_trend(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Optional[Sequence[str]] = None,
    ) -> int:
        """
        Return members of ``trend_id`` to Pending and clear their trend link.

        Args:
            signal_ids: Only release these members; all members if None

        Returns:
            Number of signals released
        """
        pass

    @abstractmethod
    async def list_by_trend(self, project_id: str, trend_id: str) -> List[Signal]:
        pass

    @abstractmethod
    async def count_by_trend(self, project_id: str, trend_id: str) -> int:
        pass


class TrendRepository(ABC):
    """Interface for trend persistence operations."""

    @abstractmethod
    async def save(self, project_id: str, trend: Trend) -> str:
        pass

    @abstractmethod
    async def get(self, project_id: str, trend_id: str) -> Optional[Trend]:
        pass

    @abstractmethod
    async def get_many(self, project_id: str, trend_ids: Sequence[str]) -> List[Trend]:
        pass

    @abstractmethod
    async def list(self, project_id: str, include_archived: bool = False) -> List[Trend]:
        """Trends newest first; archived trends only when asked for."""
        pass

    @abstractmethod
    async def update(self, project_id: str, trend_id: str, updates: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    async def delete(self, project_id: str, trend_id: str) -> bool:
        pass


class ProcessingStatusRepository(ABC):
    """Interface for the per-project pipeline progress record."""

    @abstractmethod
    async def get(self, project_id: str) -> Optional[ProcessingStatus]:
        pass

    @abstractmethod
    async def save(self, project_id: str, status: ProcessingStatus) -> None:
        """Create or replace the record."""
        pass

    @abstractmethod
    async def update(self, project_id: str, updates: Dict[str, Any]) -> bool:
        pass


# ============================================================================
# Exceptions
# ============================================================================


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class ConnectionError(StorageError):
    """Exception for connection failures."""

    pass


class IntegrityError(StorageError):
    """Exception for data integrity violations."""

    pass

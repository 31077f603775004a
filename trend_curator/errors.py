"""
Error taxonomy shared by the services, the API and the review client.

Every error carries a message that is safe to show to the analyst as-is.
"""

from typing import List, Optional


class CuratorError(Exception):
    """Base exception for Trend Curator."""

    pass


class ValidationError(CuratorError):
    """Request rejected before any mutation (missing note, empty title...)."""

    pass


class NotFoundError(CuratorError):
    """Signal, trend or status record does not exist."""

    pass


class TerminalStateError(CuratorError):
    """Operation not allowed from the record's current state."""

    pass


class SummaryGenerationError(CuratorError):
    """The summarizer could not produce a title and summary."""

    pass


class InconsistencyError(CuratorError):
    """
    A trend was created but its members could not all be flipped.

    The trend exists and must be reconciled by hand; nothing is rolled back.
    """

    def __init__(self, message: str, trend_id: str, signal_ids: List[str]):
        super().__init__(message)
        self.trend_id = trend_id
        self.signal_ids = list(signal_ids)


class PipelineTriggerError(CuratorError):
    """Resume or retry could not be handed to the processing pipeline."""

    pass


class TransportError(CuratorError):
    """A call to a remote collaborator failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(TransportError):
    """The collaborator answered HTTP 429."""

    pass


class ActionInProgressError(CuratorError):
    """The same review action is already running."""

    pass


class ProcessingIncompleteError(CuratorError):
    """Review was requested before the pipeline finished."""

    pass


class InvalidTransitionError(CuratorError):
    """A state machine was asked to make an illegal move."""

    pass

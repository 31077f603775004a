"""
Project-scoped review session.

Holds what every review component needs for one project: the project id, the
backend and the user's review settings. Components receive the session
explicitly instead of reading shared global state.
"""

from typing import Dict, Optional

from trend_curator import config
from trend_curator.client.interfaces import ReviewBackend
from trend_curator.observability.logging import log_context
from trend_curator.processing.poller import StatusPoller


class ProjectSession:
    """Context object for reviewing one project."""

    def __init__(
        self,
        project_id: str,
        backend: ReviewBackend,
        poll_interval: Optional[float] = None,
        hide_reviewed: Optional[bool] = None,
        score_bands: Optional[Dict[str, float]] = None,
    ):
        if not project_id:
            raise ValueError("project_id is required")
        self.project_id = project_id
        self.backend = backend
        self.poll_interval = (
            poll_interval if poll_interval is not None else config.get_poll_interval()
        )
        self.hide_reviewed = (
            hide_reviewed if hide_reviewed is not None else config.hide_reviewed_candidates()
        )
        self.score_bands = score_bands or config.get_score_bands()

    def create_poller(self) -> StatusPoller:
        return StatusPoller(self.backend, self.project_id, interval=self.poll_interval)

    def log_scope(self, **fields) -> log_context:
        """Log context tagging every line with this project."""
        return log_context(project_id=self.project_id, **fields)

    def __repr__(self) -> str:
        return f"ProjectSession({self.project_id!r})"

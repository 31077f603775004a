"""
HTTP implementation of the review backend.

Talks to the Trend Curator REST API (``api/``) with httpx. Server error
bodies of the form ``{"error": "..."}`` are surfaced verbatim as the
exception message.
"""

import json
import logging
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote

import httpx

from trend_curator import config
from trend_curator.errors import RateLimitedError, TransportError
from trend_curator.types import (
    ColumnMappings,
    NextUnassigned,
    ProcessingStatus,
    RetryResult,
    Signal,
    SignalCreate,
    SignalFilter,
    SignalList,
    SignalUpdate,
    Trend,
    TrendDetail,
    TrendList,
    TrendUpdate,
    UndoResult,
    UploadPreview,
    UploadResult,
)

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Request failed with status {response.status_code}"


class HttpReviewBackend:
    """
    ReviewBackend and Uploader over HTTP.

    Example:
        ```python
        async with HttpReviewBackend("http://localhost:8000/api") as backend:
            status = await backend.get_processing_status("proj_1")
        ```
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: API root, e.g. ``http://localhost:8000/api``
            timeout: Per-request timeout in seconds
            headers: Extra headers (auth cookies or tokens from the caller)
            transport: Custom transport, mainly ``httpx.MockTransport`` in tests
        """
        self.base_url = (base_url or config.CURATOR_API_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or config.HTTP_TIMEOUT_SECONDS,
            headers=headers,
            transport=transport,
        )

    # ========================================================================
    # Request plumbing
    # ========================================================================

    @staticmethod
    def _project(project_id: str) -> str:
        return f"/projects/{quote(project_id, safe='')}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            RateLimitedError: On HTTP 429
            TransportError: On any other failure
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError(f"Request failed: {e}") from e

        if response.status_code == 429:
            raise RateLimitedError(_error_message(response), status_code=429)
        if response.is_error:
            message = _error_message(response)
            logger.debug(f"{method} {path} -> {response.status_code}: {message}")
            raise TransportError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON response from {path}") from e

    # ========================================================================
    # Processing status
    # ========================================================================

    async def get_processing_status(self, project_id: str) -> ProcessingStatus:
        data = await self._request("GET", f"{self._project(project_id)}/processing-status")
        return ProcessingStatus.model_validate(data)

    async def resume_processing(self, project_id: str) -> None:
        await self._request("POST", f"{self._project(project_id)}/resume-processing")

    async def retry_failed_verifications(self, project_id: str) -> RetryResult:
        data = await self._request("POST", f"{self._project(project_id)}/retry-verifications")
        return RetryResult.model_validate(data)

    # ========================================================================
    # Signals
    # ========================================================================

    async def list_signals(
        self, project_id: str, filters: Optional[SignalFilter] = None
    ) -> SignalList:
        params = (filters or SignalFilter()).model_dump(by_alias=True, exclude_none=True, mode="json")
        data = await self._request("GET", f"{self._project(project_id)}/signals", params=params)
        return SignalList.model_validate(data)

    async def get_next_unassigned(
        self, project_id: str, exclude_id: Optional[str] = None
    ) -> NextUnassigned:
        params = {"excludeSignalId": exclude_id} if exclude_id else None
        data = await self._request(
            "GET", f"{self._project(project_id)}/signals/next-unassigned", params=params
        )
        return NextUnassigned.model_validate(data)

    async def create_signal(self, project_id: str, payload: SignalCreate) -> Signal:
        data = await self._request(
            "POST",
            f"{self._project(project_id)}/signals",
            json=payload.model_dump(by_alias=True, exclude_none=True, mode="json"),
        )
        return Signal.model_validate(data)

    async def update_signal(
        self, project_id: str, signal_id: str, payload: SignalUpdate
    ) -> Signal:
        data = await self._request(
            "PUT",
            f"{self._project(project_id)}/signals/{quote(signal_id, safe='')}",
            json=payload.model_dump(by_alias=True, exclude_unset=True, mode="json"),
        )
        return Signal.model_validate(data)

    async def delete_signal(self, project_id: str, signal_id: str) -> None:
        await self._request(
            "DELETE", f"{self._project(project_id)}/signals/{quote(signal_id, safe='')}"
        )

    # ========================================================================
    # Trends
    # ========================================================================

    def _trend_path(self, project_id: str, trend_id: str, action: str = "") -> str:
        path = f"{self._project(project_id)}/trends/{quote(trend_id, safe='')}"
        return f"{path}/{action}" if action else path

    async def list_trends(self, project_id: str, include_archived: bool = False) -> TrendList:
        params = {"includeArchived": "true"} if include_archived else None
        data = await self._request("GET", f"{self._project(project_id)}/trends", params=params)
        return TrendList.model_validate(data)

    async def get_trend(self, project_id: str, trend_id: str) -> TrendDetail:
        data = await self._request("GET", self._trend_path(project_id, trend_id))
        return TrendDetail.model_validate(data)

    async def create_trend(self, project_id: str, signal_ids: Sequence[str]) -> Trend:
        data = await self._request(
            "POST",
            f"{self._project(project_id)}/trends",
            json={"signalIds": list(signal_ids)},
        )
        return Trend.model_validate(data["trend"])

    async def update_trend(self, project_id: str, trend_id: str, payload: TrendUpdate) -> Trend:
        data = await self._request(
            "PUT",
            self._trend_path(project_id, trend_id),
            json=payload.model_dump(by_alias=True, exclude_unset=True, mode="json"),
        )
        return Trend.model_validate(data["trend"])

    async def delete_trend(self, project_id: str, trend_id: str) -> None:
        await self._request("DELETE", self._trend_path(project_id, trend_id))

    async def undo_trend(self, project_id: str, trend_id: str) -> UndoResult:
        data = await self._request("POST", self._trend_path(project_id, trend_id, "undo"))
        return UndoResult.model_validate(data)

    async def regenerate_trend_summary(self, project_id: str, trend_id: str) -> Trend:
        data = await self._request(
            "POST", self._trend_path(project_id, trend_id, "regenerate-summary")
        )
        return Trend.model_validate(data["trend"])

    async def add_signals(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Sequence[str],
        regenerate_summary: bool = False,
    ) -> Trend:
        data = await self._request(
            "POST",
            self._trend_path(project_id, trend_id, "add-signals"),
            json={"signalIds": list(signal_ids), "regenerateSummary": regenerate_summary},
        )
        return Trend.model_validate(data["trend"])

    async def remove_signals(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Sequence[str],
        regenerate_summary: bool = False,
    ) -> Trend:
        data = await self._request(
            "POST",
            self._trend_path(project_id, trend_id, "remove-signals"),
            json={"signalIds": list(signal_ids), "regenerateSummary": regenerate_summary},
        )
        return Trend.model_validate(data["trend"])

    # ========================================================================
    # Upload (served by the import service, not by this package's API)
    # ========================================================================

    async def preview(self, project_id: str, filename: str, content: bytes) -> UploadPreview:
        data = await self._request(
            "POST",
            f"{self._project(project_id)}/upload/preview",
            files={"file": (filename, content)},
        )
        return UploadPreview.model_validate(data)

    async def upload(
        self,
        project_id: str,
        filename: str,
        content: bytes,
        mappings: ColumnMappings,
    ) -> UploadResult:
        data = await self._request(
            "POST",
            f"{self._project(project_id)}/upload",
            files={"file": (filename, content)},
            data={"mappings": json.dumps(mappings.model_dump(exclude_none=True))},
        )
        return UploadResult.model_validate(data)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

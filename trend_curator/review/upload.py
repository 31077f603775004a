"""
Spreadsheet upload flow.

    idle -> previewing -> mapping -> uploading -> done
              |                        |
              v                        v
            idle (preview failed)    mapping (upload failed)

``reset()`` returns to idle from mapping or done. Any other call raises
InvalidTransitionError, so a file cannot be submitted twice.
"""

import logging
from enum import Enum
from typing import Optional

from trend_curator.client.interfaces import Uploader
from trend_curator.errors import InvalidTransitionError, ValidationError
from trend_curator.types import ColumnMappings, UploadPreview, UploadResult

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    MAPPING = "mapping"
    UPLOADING = "uploading"
    DONE = "done"


class UploadFlow:
    """Explicit state machine around the Uploader collaborator."""

    def __init__(self, uploader: Uploader, project_id: str):
        self.uploader = uploader
        self.project_id = project_id

        self.state = UploadState.IDLE
        self.filename: Optional[str] = None
        self.preview: Optional[UploadPreview] = None
        self.result: Optional[UploadResult] = None
        self.error: Optional[str] = None
        self._content: Optional[bytes] = None

    async def select_file(self, filename: str, content: bytes) -> UploadPreview:
        """Send the file for preview and move to column mapping."""
        self._move(UploadState.IDLE, UploadState.PREVIEWING)
        self.error = None
        try:
            preview = await self.uploader.preview(self.project_id, filename, content)
        except Exception as e:
            self.state = UploadState.IDLE
            self.error = str(e) or "Failed to preview file"
            logger.warning(f"Upload preview failed for {self.project_id}: {e}")
            raise

        self.filename = filename
        self._content = content
        self.preview = preview
        self.state = UploadState.MAPPING
        return preview

    async def confirm(self, mappings: Optional[ColumnMappings] = None) -> UploadResult:
        """
        Upload with the chosen column mappings.

        Args:
            mappings: Column per field; defaults to the detected mappings
        """
        if self.state != UploadState.MAPPING:
            raise InvalidTransitionError(f"Cannot upload while {self.state.value}")
        mappings = mappings or self.preview.detected_mappings
        if not mappings.description:
            raise ValidationError("Choose the column that holds the signal description")

        self._move(UploadState.MAPPING, UploadState.UPLOADING)
        self.error = None
        try:
            result = await self.uploader.upload(
                self.project_id, self.filename, self._content, mappings
            )
        except Exception as e:
            self.state = UploadState.MAPPING
            self.error = str(e) or "Upload failed"
            logger.warning(f"Upload failed for {self.project_id}: {e}")
            raise

        self.result = result
        self._content = None
        self.state = UploadState.DONE
        logger.info(f"Uploaded {result.signal_count} signals to {self.project_id}")
        return result

    def reset(self) -> None:
        """Discard the file (from mapping) or start another upload (from done)."""
        if self.state not in (UploadState.MAPPING, UploadState.DONE):
            raise InvalidTransitionError(f"Cannot reset while {self.state.value}")
        self.state = UploadState.IDLE
        self.filename = None
        self.preview = None
        self.result = None
        self.error = None
        self._content = None

    def _move(self, expected: UploadState, target: UploadState) -> None:
        if self.state != expected:
            raise InvalidTransitionError(
                f"Cannot go to {target.value} while {self.state.value}"
            )
        self.state = target

"""
Processing status endpoints.

Progress of the external scoring pipeline and the resume / retry triggers
forwarded to it.
"""

import logging

from fastapi import APIRouter, Depends, status

from api.dependencies import get_processing_service, get_status_reader
from api.schemas.common import SuccessResponse
from trend_curator.processing.service import ProcessingStatusService
from trend_curator.types import ProcessingStatus, RetryResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["Processing"])


@router.get(
    "/processing-status",
    response_model=ProcessingStatus,
    status_code=status.HTTP_200_OK,
    summary="Get processing status",
    description="Pipeline phase and counters with percentage and time estimate.",
)
async def get_processing_status(
    project_id: str,
    service: ProcessingStatusService = Depends(get_status_reader),
) -> ProcessingStatus:
    return await service.get_status(project_id)


@router.post(
    "/resume-processing",
    response_model=SuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Resume processing",
    description="Queue the pipeline from its last checkpoint, clearing an error state.",
)
async def resume_processing(
    project_id: str,
    service: ProcessingStatusService = Depends(get_processing_service),
) -> SuccessResponse:
    queued = await service.resume(project_id)
    message = "Processing resumed" if queued else "Processing already complete"
    return SuccessResponse(success=True, message=message)


@router.post(
    "/retry-verifications",
    response_model=RetryResult,
    status_code=status.HTTP_200_OK,
    summary="Retry failed verifications",
)
async def retry_verifications(
    project_id: str,
    service: ProcessingStatusService = Depends(get_processing_service),
) -> RetryResult:
    return await service.retry_verifications(project_id)

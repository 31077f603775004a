"""
Signal endpoints.

Listing, the review queue (next unassigned signal with its similar
candidates) and manual create / edit / delete.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from api.dependencies import get_signal_service
from trend_curator.services.signals import SignalService
from trend_curator.types import (
    NextUnassigned,
    Signal,
    SignalCreate,
    SignalFilter,
    SignalList,
    SignalStatus,
    SignalUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/signals", tags=["Signals"])


@router.get(
    "",
    response_model=SignalList,
    status_code=status.HTTP_200_OK,
    summary="List signals",
    description="Signals of a project, oldest first, with the unassigned count.",
)
async def list_signals(
    project_id: str,
    signal_status: Optional[SignalStatus] = Query(
        None, alias="status", description="Filter by review status"
    ),
    limit: int = Query(50, ge=1, le=1000, description="Number of signals to return"),
    offset: int = Query(0, ge=0, description="Number of signals to skip"),
    service: SignalService = Depends(get_signal_service),
) -> SignalList:
    filters = SignalFilter(status=signal_status, limit=limit, offset=offset)
    return await service.list_signals(project_id, filters)


# Declared before /{signal_id} so "next-unassigned" is not taken for an id
@router.get(
    "/next-unassigned",
    response_model=NextUnassigned,
    status_code=status.HTTP_200_OK,
    summary="Next signal to review",
    description=(
        "Oldest Pending signal (optionally skipping one) with its similar "
        "candidates and the number of Pending signals left after it."
    ),
)
async def get_next_unassigned(
    project_id: str,
    exclude_signal_id: Optional[str] = Query(
        None, alias="excludeSignalId", description="Signal to skip"
    ),
    service: SignalService = Depends(get_signal_service),
) -> NextUnassigned:
    return await service.get_next_unassigned(project_id, exclude_signal_id)


@router.get(
    "/{signal_id}",
    response_model=Signal,
    status_code=status.HTTP_200_OK,
    summary="Get signal",
)
async def get_signal(
    project_id: str,
    signal_id: str,
    service: SignalService = Depends(get_signal_service),
) -> Signal:
    return await service.get_signal(project_id, signal_id)


@router.post(
    "",
    response_model=Signal,
    status_code=status.HTTP_201_CREATED,
    summary="Create signal",
    description="Add a signal by hand. The id is the next zero-padded number.",
)
async def create_signal(
    project_id: str,
    payload: SignalCreate,
    service: SignalService = Depends(get_signal_service),
) -> Signal:
    return await service.create_signal(project_id, payload)


@router.put(
    "/{signal_id}",
    response_model=Signal,
    status_code=status.HTTP_200_OK,
    summary="Update signal",
    description="Partial update. Archiving requires a note.",
)
async def update_signal(
    project_id: str,
    signal_id: str,
    payload: SignalUpdate,
    service: SignalService = Depends(get_signal_service),
) -> Signal:
    return await service.update_signal(project_id, signal_id, payload)


@router.delete(
    "/{signal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete signal",
)
async def delete_signal(
    project_id: str,
    signal_id: str,
    service: SignalService = Depends(get_signal_service),
) -> Response:
    await service.delete_signal(project_id, signal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

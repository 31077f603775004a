"""
Trend endpoints.

Creating a trend from reviewed signals, editing it through its lifecycle,
undoing it and managing its members.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from api.dependencies import get_trend_service
from api.schemas.trends import MembershipRequest, TrendCreateRequest, TrendResponse
from trend_curator.services.trends import TrendService
from trend_curator.types import TrendDetail, TrendList, TrendUpdate, UndoResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}/trends", tags=["Trends"])


@router.get(
    "",
    response_model=TrendList,
    status_code=status.HTTP_200_OK,
    summary="List trends",
    description="Trends of a project, newest first. Archived trends are hidden by default.",
)
async def list_trends(
    project_id: str,
    include_archived: bool = Query(
        False, alias="includeArchived", description="Include archived trends"
    ),
    service: TrendService = Depends(get_trend_service),
) -> TrendList:
    return await service.list_trends(project_id, include_archived)


@router.get(
    "/{trend_id}",
    response_model=TrendDetail,
    status_code=status.HTTP_200_OK,
    summary="Get trend with its signals",
)
async def get_trend(
    project_id: str,
    trend_id: str,
    service: TrendService = Depends(get_trend_service),
) -> TrendDetail:
    return await service.get_trend(project_id, trend_id)


@router.post(
    "",
    response_model=TrendResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create trend",
    description=(
        "Generate a title and summary for the listed signals, save a draft "
        "trend and combine every signal into it."
    ),
)
async def create_trend(
    project_id: str,
    payload: TrendCreateRequest,
    service: TrendService = Depends(get_trend_service),
) -> TrendResponse:
    trend = await service.create_trend(project_id, payload.signal_ids)
    return TrendResponse(trend=trend)


@router.put(
    "/{trend_id}",
    response_model=TrendResponse,
    status_code=status.HTTP_200_OK,
    summary="Update trend",
    description="Edit title, summary, note or lifecycle status.",
)
async def update_trend(
    project_id: str,
    trend_id: str,
    payload: TrendUpdate,
    service: TrendService = Depends(get_trend_service),
) -> TrendResponse:
    trend = await service.update_trend(project_id, trend_id, payload)
    return TrendResponse(trend=trend)


@router.delete(
    "/{trend_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete trend",
    description="Delete the trend; its signals return to Pending.",
)
async def delete_trend(
    project_id: str,
    trend_id: str,
    service: TrendService = Depends(get_trend_service),
) -> Response:
    await service.delete_trend(project_id, trend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{trend_id}/undo",
    response_model=UndoResult,
    status_code=status.HTTP_200_OK,
    summary="Undo trend",
    description="Archive a draft or final trend and return its signals to Pending.",
)
async def undo_trend(
    project_id: str,
    trend_id: str,
    service: TrendService = Depends(get_trend_service),
) -> UndoResult:
    return await service.undo_trend(project_id, trend_id)


@router.post(
    "/{trend_id}/regenerate-summary",
    response_model=TrendResponse,
    status_code=status.HTTP_200_OK,
    summary="Regenerate title and summary",
)
async def regenerate_summary(
    project_id: str,
    trend_id: str,
    service: TrendService = Depends(get_trend_service),
) -> TrendResponse:
    trend = await service.regenerate_summary(project_id, trend_id)
    return TrendResponse(trend=trend)


@router.post(
    "/{trend_id}/add-signals",
    response_model=TrendResponse,
    status_code=status.HTTP_200_OK,
    summary="Add signals to trend",
)
async def add_signals(
    project_id: str,
    trend_id: str,
    payload: MembershipRequest,
    service: TrendService = Depends(get_trend_service),
) -> TrendResponse:
    trend = await service.add_signals(
        project_id, trend_id, payload.signal_ids, payload.regenerate_summary
    )
    return TrendResponse(trend=trend)


@router.post(
    "/{trend_id}/remove-signals",
    response_model=TrendResponse,
    status_code=status.HTTP_200_OK,
    summary="Remove signals from trend",
    description="Removed signals return to Pending. A trend cannot lose all of its signals.",
)
async def remove_signals(
    project_id: str,
    trend_id: str,
    payload: MembershipRequest,
    service: TrendService = Depends(get_trend_service),
) -> TrendResponse:
    trend = await service.remove_signals(
        project_id, trend_id, payload.signal_ids, payload.regenerate_summary
    )
    return TrendResponse(trend=trend)

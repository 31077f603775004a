"""
Health check and metrics endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Response, status

from api import __version__
from api.schemas.common import HealthCheckResponse
from trend_curator.observability.metrics import render_metrics


router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Reports whether the database pool and summarizer are available.",
)
async def health_check() -> HealthCheckResponse:
    from api.main import app_state

    services = {
        "database": app_state.db_pool is not None and app_state.db_pool.pool is not None,
        "summarizer": app_state.summarizer is not None,
        "pipeline": app_state.runner is not None,
    }
    return HealthCheckResponse(
        status="healthy" if services["database"] else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services,
    )


metrics_router = APIRouter(tags=["Monitoring"])


@metrics_router.get("/metrics", response_class=Response)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics in text format."""
    content, content_type = render_metrics()
    return Response(content=content, media_type=content_type)

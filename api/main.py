"""
FastAPI main application for the Trend Curator API.

This module initializes the FastAPI app, configures middleware, error handlers,
and includes all API routers.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.schemas.common import ErrorResponse
from trend_curator import config
from trend_curator.errors import (
    CuratorError,
    InconsistencyError,
    NotFoundError,
    PipelineTriggerError,
    SummaryGenerationError,
    TerminalStateError,
    ValidationError,
)
from trend_curator.observability.logging import log_error, setup_logging
from trend_curator.observability.metrics import api_request_counter, api_request_duration
from trend_curator.storage.interfaces import StorageError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    TerminalStateError: status.HTTP_409_CONFLICT,
    InconsistencyError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SummaryGenerationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PipelineTriggerError: status.HTTP_502_BAD_GATEWAY,
}


# Application state
class AppState:
    """Application state container."""

    def __init__(self):
        self.db_pool = None
        self.summarizer = None
        self.runner = None
        self.started_at: Optional[datetime] = None


app_state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.

    Connects the database, creates the schema and sets up the summarizer and
    the pipeline runner. A failing dependency is logged and left unset so the
    API still starts.
    """
    setup_logging(config.LOG_LEVEL, json_format=config.LOG_JSON)
    logger.info("Starting Trend Curator API...")
    app_state.started_at = datetime.now(timezone.utc)

    try:
        from trend_curator.storage.postgres import PostgreSQLConnectionPool, initialize_schema

        app_state.db_pool = PostgreSQLConnectionPool(
            host=config.POSTGRES_HOST,
            port=config.POSTGRES_PORT,
            database=config.POSTGRES_DB,
            user=config.POSTGRES_USER,
            password=config.POSTGRES_PASSWORD,
            min_size=2,
            max_size=20,
        )
        pool = await app_state.db_pool.connect()
        await initialize_schema(pool)
        logger.info("Database connection pool initialized")

    except Exception as e:
        logger.warning(f"Database connection failed: {e}")
        logger.info("API will start but database-dependent endpoints will return 503")

    if config.ANTHROPIC_API_KEY:
        from trend_curator.services.summarizer import AnthropicTrendSummarizer

        app_state.summarizer = AnthropicTrendSummarizer()
    else:
        logger.warning("ANTHROPIC_API_KEY not set; trend summaries are unavailable")

    try:
        from trend_curator.processing.runner import CeleryPipelineRunner

        app_state.runner = CeleryPipelineRunner()
        logger.info("Processing pipeline runner configured")

    except Exception as e:
        logger.warning(f"Pipeline runner initialization failed: {e}")

    logger.info("API startup complete")

    yield

    logger.info("Shutting down Trend Curator API...")

    if app_state.summarizer is not None:
        await app_state.summarizer.close()
        app_state.summarizer = None

    if app_state.db_pool:
        try:
            await app_state.db_pool.close()
        except Exception as e:
            logger.error(f"Error closing database pool: {e}")

    logger.info("API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Trend Curator API",
    description="""
    ## Trend Curator

    Review imported signals one at a time, combine similar signals into
    curated trends and take each trend through its lifecycle.

    ### Features

    - **Processing status**: progress of the scoring pipeline per project
    - **Review queue**: next unassigned signal with ranked similar candidates
    - **Trend assembly**: generated title and summary, all-or-nothing membership
    - **Lifecycle**: draft, final, retired and archived trends with undo
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# CORS middleware configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    """Count requests and their latency per route template."""
    start_time = time.time()
    response = await call_next(request)

    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    api_request_counter.labels(
        method=request.method, endpoint=endpoint, status_code=str(response.status_code)
    ).inc()
    api_request_duration.labels(method=request.method, endpoint=endpoint).observe(
        time.time() - start_time
    )
    return response


# Exception handlers

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@app.exception_handler(CuratorError)
async def curator_exception_handler(request: Request, exc: CuratorError):
    """Map domain errors to HTTP status codes; the message is passed through."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            status_code = ERROR_STATUS[cls]
            break

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return error_response(status_code, str(exc))


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    log_error(logger, "Storage failure", exc, method=request.method, path=request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent error response format."""
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are plain validation errors."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


# Root endpoint
@app.get("/", tags=["Root"])
async def root() -> Dict[str, Any]:
    """API root endpoint providing basic information."""
    return {
        "name": "Trend Curator API",
        "version": __version__,
        "status": "operational",
        "docs": "/docs",
        "endpoints": {
            "processing": "/api/projects/{project_id}/processing-status",
            "signals": "/api/projects/{project_id}/signals",
            "trends": "/api/projects/{project_id}/trends",
            "health": "/api/health",
            "metrics": "/metrics",
        },
    }


# Include routers
# Imported here to avoid circular imports
from api.routers import health, processing, signals, trends  # noqa: E402

app.include_router(health.router, prefix="/api")
app.include_router(processing.router, prefix="/api")
app.include_router(signals.router, prefix="/api")
app.include_router(trends.router, prefix="/api")
app.include_router(health.metrics_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )

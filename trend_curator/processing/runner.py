"""
Hand-off to the external scoring pipeline.

Embedding, similarity and verification work runs in separate Celery workers.
This module only triggers it: ``resume`` is fire-and-forget, while
``retry_verifications`` waits for the worker to report how many failed
verifications it re-ran.
"""

import asyncio
import logging
from typing import Optional, Protocol

from celery import Celery
from kombu import Exchange, Queue

from trend_curator import config
from trend_curator.errors import PipelineTriggerError
from trend_curator.types import RetryResult

logger = logging.getLogger(__name__)

RESUME_TASK = "curator_pipeline.tasks.process_project"
RETRY_TASK = "curator_pipeline.tasks.retry_failed_verifications"


class PipelineRunner(Protocol):
    """Triggers for the scoring pipeline of one project."""

    async def resume(self, project_id: str) -> None:
        """Queue (re)processing from the last checkpoint."""
        ...

    async def retry_verifications(self, project_id: str) -> RetryResult:
        """Re-run failed verifications and report the outcome."""
        ...


class CeleryConfig:
    """Celery configuration for the pipeline producer side."""

    broker_url = config.CELERY_BROKER_URL
    result_backend = config.CELERY_RESULT_BACKEND

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]
    timezone = "UTC"
    enable_utc = True

    result_expires = 3600

    task_queues = (
        Queue("processing", Exchange("processing"), routing_key="processing.#"),
    )
    task_routes = {
        "curator_pipeline.tasks.*": {
            "queue": "processing",
            "routing_key": "processing.pipeline",
        },
    }


def create_celery_app() -> Celery:
    app = Celery("trend_curator")
    app.config_from_object(CeleryConfig)
    return app


class CeleryPipelineRunner:
    """PipelineRunner that sends named tasks to the pipeline workers."""

    def __init__(self, app: Optional[Celery] = None, retry_timeout: Optional[float] = None):
        self.app = app or create_celery_app()
        self.retry_timeout = retry_timeout or config.PIPELINE_RETRY_TIMEOUT_SECONDS

    async def resume(self, project_id: str) -> None:
        try:
            result = await asyncio.to_thread(
                self.app.send_task, RESUME_TASK, args=[project_id]
            )
        except Exception as e:
            logger.error(f"Failed to queue processing for {project_id}: {e}")
            raise PipelineTriggerError("Failed to resume processing") from e

        logger.info(f"Queued processing for {project_id} (task {result.id})")

    async def retry_verifications(self, project_id: str) -> RetryResult:
        try:
            result = await asyncio.to_thread(
                self.app.send_task, RETRY_TASK, args=[project_id]
            )
            payload = await asyncio.to_thread(result.get, timeout=self.retry_timeout)
        except Exception as e:
            logger.error(f"Failed to retry verifications for {project_id}: {e}")
            raise PipelineTriggerError("Failed to retry verifications") from e

        retry = RetryResult.model_validate(payload or {})
        logger.info(
            f"Retried verifications for {project_id}: "
            f"{retry.succeeded}/{retry.retried} succeeded"
        )
        return retry

"""Taskiq broker construction.

RabbitMQ (taskiq-aio-pika) carries jobs in production; when RabbitMQ is
disabled (``RABBIT_ENABLED=false``) an ``InMemoryBroker`` runs jobs inside
the producing process, which is what tests and single-process local runs
use.

Run a worker against the production broker with:

    taskiq worker taskflow.workers.tasks.runtime:broker
"""

from __future__ import annotations

import logging

from taskiq import AsyncBroker, InMemoryBroker
from taskiq.middlewares import SimpleRetryMiddleware
from taskiq_aio_pika import AioPikaBroker

from taskflow.core.settings import (
    RabbitSettings,
    TaskSettings,
    get_rabbit_settings,
    get_task_settings,
)

logger = logging.getLogger(__name__)

BROKER_QUEUE = "taskflow-jobs"


def create_broker(
    rabbit_settings: RabbitSettings | None = None,
    task_settings: TaskSettings | None = None,
) -> AsyncBroker:
    """Build the job broker with the retry middleware installed.

    Args:
        rabbit_settings: RabbitMQ settings (defaults to environment)
        task_settings: Task dispatch settings (defaults to environment)
    """
    rabbit_settings = rabbit_settings or get_rabbit_settings()
    task_settings = task_settings or get_task_settings()

    retry = SimpleRetryMiddleware(default_retry_count=task_settings.max_retries)

    if not rabbit_settings.is_configured:
        logger.warning("RabbitMQ disabled - jobs run on an in-memory broker")
        return InMemoryBroker().with_middlewares(retry)

    queue = rabbit_settings.get_prefixed_queue(BROKER_QUEUE)
    broker = AioPikaBroker(
        url=rabbit_settings.get_url(),
        queue_name=queue,
        declare_exchange=True,
        declare_queues=True,
    ).with_middlewares(retry)

    logger.info(
        "Taskiq job broker configured",
        extra={"queue": queue, "max_retries": task_settings.max_retries, "middlewares": ["SimpleRetryMiddleware"]},
    )
    return broker


async def start_broker(broker: AsyncBroker) -> None:
    """Connect the broker (producer side or worker side)."""
    logger.info("Starting Taskiq broker")
    try:
        await broker.startup()
    except Exception as e:
        logger.exception("Failed to start Taskiq broker", extra={"error": str(e)})
        raise
    logger.info("Taskiq broker started successfully")


async def stop_broker(broker: AsyncBroker) -> None:
    """Close broker connections."""
    logger.info("Stopping Taskiq broker")
    try:
        await broker.shutdown()
    except Exception as e:
        logger.exception("Error stopping Taskiq broker", extra={"error": str(e)})

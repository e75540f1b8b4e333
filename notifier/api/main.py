"""
FastAPI application entry point.

Runs the notification consumer in the background of the HTTP service.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from notifier import __version__
from notifier.api.routes import health_router, notifications_router
from notifier.config import get_settings
from notifier.observability.logging import setup_logging
from notifier.observability.metrics import setup_metrics
from notifier.observability.tracing import instrument_fastapi, setup_tracing, shutdown_tracing
from notifier.transport import QueueTransport, TransportConnectionError, create_transport
from notifier.worker.main import NotificationWorker

logger = logging.getLogger(__name__)


async def _start_worker(transport: QueueTransport | None) -> NotificationWorker | None:
    """
    Connect the configured transport and wrap it in a worker.

    A missing SQS queue URL (ConfigurationError) propagates and stops
    startup. An unreachable backend only disables the consumer.
    """
    if transport is None:
        try:
            transport = await create_transport()
        except TransportConnectionError as e:
            logger.error("Failed to initialize queue transport", extra={"error": str(e)})
            return None
    return NotificationWorker(transport)


def create_app(transport: QueueTransport | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        transport: Transport to consume from. Built from settings on
            startup when not given.

    Returns:
        FastAPI: The configured application instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Starts the consume loop on startup and closes the transport on
        shutdown, waiting for the in-flight message to finish.
        """
        setup_logging()
        setup_metrics()
        setup_tracing()

        worker = await _start_worker(transport)
        consumer_task = None
        if worker is not None:
            app.state.worker = worker
            consumer_task = asyncio.create_task(worker.start())

        logger.info(
            "Application started",
            extra={"transport": get_settings().queue_transport.value},
        )

        yield

        if worker is not None:
            await worker.stop()
        if consumer_task is not None:
            await consumer_task
        app.state.worker = None

        shutdown_tracing()
        logger.info("Application shutdown")

    app = FastAPI(
        title="Notification Service",
        description="Queue-backed notification consumer with Redis and SQS transports",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.worker = None

    app.include_router(health_router)
    app.include_router(notifications_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

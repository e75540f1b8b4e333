"""
Worker process for consuming notifications.

The worker owns one transport and runs its consume loop with the
notification handler until SIGTERM/SIGINT closes the transport.
"""

import asyncio
import logging
import signal

from notifier.config import get_settings
from notifier.observability.logging import setup_logging
from notifier.observability.metrics import setup_metrics
from notifier.observability.tracing import setup_tracing, shutdown_tracing
from notifier.transport import QueueTransport, create_transport
from notifier.transport.base import MessageHandler
from notifier.worker.handlers import process_notification

logger = logging.getLogger(__name__)


class NotificationWorker:
    """
    Runs a transport's consume loop.

    Stopping is cooperative: ``stop()`` closes the transport, and ``start()``
    returns once the in-flight retrieval or handler call has finished.
    """

    def __init__(
        self,
        transport: QueueTransport,
        handler: MessageHandler = process_notification,
    ):
        self.transport = transport
        self.handler = handler

    @property
    def active(self) -> bool:
        """Whether the consume loop is running."""
        return self.transport.running

    async def start(self) -> None:
        """Consume until stopped."""
        logger.info("Worker starting", extra={"transport": self.transport.kind.value})
        await self.transport.consume(self.handler)
        logger.info("Worker stopped", extra={"transport": self.transport.kind.value})

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Worker stopping", extra={"transport": self.transport.kind.value})
        await self.transport.close()


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_metrics()
    setup_tracing()

    settings = get_settings()
    logger.info("Queue transport selected", extra={"transport": settings.queue_transport.value})

    transport = await create_transport(settings)
    worker = NotificationWorker(transport)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(worker.stop()))

    try:
        await worker.start()
    finally:
        await transport.close()
        shutdown_tracing()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()

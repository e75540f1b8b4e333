"""
Redis transport for local development.

Messages are LPUSHed onto a list and BRPOPed by the consumer. A pop removes
the item for good: there is no acknowledgement and no redelivery. If the
handler raises, the message is lost. Use SQSTransport where losing a
notification on handler failure is not acceptable.
"""

import asyncio
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from notifier.config import Settings
from notifier.constants import (
    DEFAULT_QUEUE_NAME,
    REDIS_ERROR_BACKOFF_SECONDS,
    REDIS_POP_TIMEOUT_SECONDS,
    ConsumeOutcome,
    TransportKind,
)
from notifier.observability.metrics import MetricsCollector
from notifier.transport.base import MessageHandler, QueueTransport
from notifier.transport.errors import HandlerError, TransportConnectionError
from notifier.types.message import QueueMessage

logger = logging.getLogger(__name__)


class RedisTransport(QueueTransport):
    """
    List-based transport using blocking pops.

    Item lifecycle:
    - Popped -> Malformed -> Discarded
    - Popped -> Valid -> HandlerInvoked -> Removed (whatever the outcome)
    """

    kind = TransportKind.REDIS

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        queue_name: str = DEFAULT_QUEUE_NAME,
        pop_timeout: int = REDIS_POP_TIMEOUT_SECONDS,
        error_backoff: float = REDIS_ERROR_BACKOFF_SECONDS,
        client: Any = None,
        stop_event: asyncio.Event | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the transport. No I/O happens until ``connect``.

        Args:
            host: Redis host.
            port: Redis port.
            queue_name: List key holding the messages.
            pop_timeout: Seconds BRPOP waits before the loop rechecks the stop event.
            error_backoff: Seconds to sleep after a failed pop or handler.
            client: Pre-built async Redis client (tests inject a fake).
            stop_event: Cancellation token shared with the caller.
            metrics: Metrics collector.
        """
        super().__init__(stop_event=stop_event, metrics=metrics)
        self.host = host
        self.port = port
        self.queue_name = queue_name
        self.pop_timeout = pop_timeout
        self.error_backoff = error_backoff
        if client is None:
            client = Redis(host=host, port=port, decode_responses=True)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "RedisTransport":
        """Build a transport from application settings."""
        return cls(
            host=settings.redis_host,
            port=settings.redis_port,
            queue_name=settings.queue_name,
            pop_timeout=settings.redis_pop_timeout_seconds,
            error_backoff=settings.redis_error_backoff_seconds,
            **kwargs,
        )

    async def connect(self) -> None:
        """Verify the Redis connection."""
        try:
            await self._client.ping()
        except RedisError as e:
            self._metrics.record_transport_error(self.kind.value, "connect")
            raise TransportConnectionError("connect", str(e)) from e

        logger.info(
            "Connected to Redis",
            extra={"host": self.host, "port": self.port, "queue": self.queue_name},
        )

    async def publish(self, message: QueueMessage) -> None:
        """Push the serialized message onto the list."""
        try:
            await self._client.lpush(self.queue_name, message.to_json())
        except RedisError as e:
            self._metrics.record_transport_error(self.kind.value, "publish")
            raise TransportConnectionError("publish", str(e)) from e

        self._metrics.record_published(self.kind.value)

    async def _poll_once(self, handler: MessageHandler) -> None:
        """
        Pop one item and process it.

        The pop and the handler call are one unit: a failure in either is
        logged and followed by a fixed backoff.
        """
        try:
            result = await self._client.brpop([self.queue_name], timeout=self.pop_timeout)
            if result is None:
                return

            _, raw = result
            message = self._check(raw)
            if message is None:
                return

            await self._dispatch(handler, message)
            self._metrics.record_consumed(self.kind.value, ConsumeOutcome.ACKED)

        except HandlerError as e:
            # Already popped: nothing to put back
            logger.exception(
                "Handler failed; message lost",
                extra={"transport": self.kind.value, "error": str(e.__cause__)},
            )
            self._metrics.record_consumed(self.kind.value, ConsumeOutcome.LOST)
            await asyncio.sleep(self.error_backoff)

        except Exception as e:
            if self.stopping:
                # Connection was closed under a pending BRPOP
                logger.debug("Pop interrupted by shutdown", extra={"error": str(e)})
                return
            logger.error(
                "Redis consumer error",
                extra={"transport": self.kind.value, "error": str(e)},
            )
            self._metrics.record_transport_error(self.kind.value, "receive")
            await asyncio.sleep(self.error_backoff)

    async def _release(self) -> None:
        await self._client.aclose()

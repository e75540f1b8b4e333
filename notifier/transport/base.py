"""
Queue transport contract.

Delivery guarantees differ per backend and are deliberately not unified:

- RedisTransport: a popped item is gone. If the handler raises, the message
  is lost (at-most-once on failure).
- SQSTransport: an item is deleted only after the handler succeeds. If the
  handler raises, SQS redelivers it after the visibility timeout
  (at-least-once, duplicates possible).

Malformed payloads are removed by both backends and never reach a handler.

Trace context propagation is the producer's job on the way in
(``inject_carrier``); on the way out the transport runs the handler under
the extracted context.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from notifier.constants import LOG_PREVIEW_CHARS, ConsumeOutcome, TransportKind
from notifier.observability.metrics import MetricsCollector, get_metrics
from notifier.observability.tracing import use_carrier
from notifier.transport.errors import HandlerError
from notifier.transport.validation import ValidationFailure, validate
from notifier.types.message import QueueMessage

logger = logging.getLogger(__name__)

# Type alias for message handler functions
MessageHandler = Callable[[QueueMessage], Awaitable[None]]


class QueueTransport(ABC):
    """
    Common interface for queue transports.

    The consume loop is cooperative: ``close()`` sets the stop event, and the
    loop checks it between retrievals. An in-flight retrieval or handler call
    always runs to completion.
    """

    kind: TransportKind

    def __init__(
        self,
        stop_event: asyncio.Event | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Args:
            stop_event: Cancellation token. Pass a pre-set event to get a
                transport whose ``consume`` returns immediately.
            metrics: Metrics collector. Defaults to the global one.
        """
        self._stop = stop_event or asyncio.Event()
        self._metrics = metrics or get_metrics()
        self._consuming = False
        self._closed = False

    @property
    def running(self) -> bool:
        """Whether a consume loop is currently active."""
        return self._consuming

    @property
    def stopping(self) -> bool:
        """Whether close() has been requested."""
        return self._stop.is_set()

    async def connect(self) -> None:
        """Open or verify the backend connection."""

    @abstractmethod
    async def publish(self, message: QueueMessage) -> None:
        """
        Serialize and enqueue a message.

        Raises:
            TransportConnectionError: The backend could not be reached.
        """

    async def consume(self, handler: MessageHandler) -> None:
        """
        Retrieve and process messages until ``close()`` is called.

        Args:
            handler: Coroutine function called once per valid message.

        Raises:
            RuntimeError: A consume loop is already running on this instance.
        """
        if self._consuming:
            raise RuntimeError(f"{type(self).__name__} is already consuming")

        self._consuming = True
        logger.info("Starting consumer", extra={"transport": self.kind.value})
        try:
            while not self._stop.is_set():
                await self._poll_once(handler)
        finally:
            self._consuming = False
            logger.info("Consumer stopped", extra={"transport": self.kind.value})

    @abstractmethod
    async def _poll_once(self, handler: MessageHandler) -> None:
        """Run one retrieval (or one batch) to completion."""

    async def close(self) -> None:
        """Stop the consume loop and release the connection. Safe to call twice."""
        self._stop.set()
        if self._closed:
            return
        self._closed = True
        logger.info("Closing transport", extra={"transport": self.kind.value})
        await self._release()

    @abstractmethod
    async def _release(self) -> None:
        """Release backend resources."""

    def _check(self, raw: str | bytes | None) -> QueueMessage | None:
        """Validate a payload, logging and counting it if malformed."""
        try:
            result = validate(raw)
        except Exception:
            # A payload that crashes the validator is poison like any other
            logger.exception(
                "Validator crashed; discarding message",
                extra={"transport": self.kind.value, "raw": str(raw)[:LOG_PREVIEW_CHARS]},
            )
            self._metrics.record_consumed(self.kind.value, ConsumeOutcome.MALFORMED)
            return None

        if isinstance(result, ValidationFailure):
            logger.warning(
                "Discarding malformed message",
                extra={
                    "transport": self.kind.value,
                    "reason": result.kind.value,
                    "detail": result.detail,
                    "raw": result.preview,
                },
            )
            self._metrics.record_consumed(self.kind.value, ConsumeOutcome.MALFORMED)
            return None
        return result

    async def _dispatch(self, handler: MessageHandler, message: QueueMessage) -> None:
        """
        Call the handler under the message's trace context.

        Raises:
            HandlerError: The handler raised. Cancellation is not wrapped.
        """
        started = time.perf_counter()
        try:
            with use_carrier(message.trace_context):
                await handler(message)
        except Exception as e:
            raise HandlerError(message.type, message.order_id) from e
        finally:
            self._metrics.observe_handler(self.kind.value, time.perf_counter() - started)

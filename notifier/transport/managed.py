"""
SQS transport for AWS deployments.

Messages are received in long-polled batches and deleted only after the
handler succeeds. A failed handler leaves the message in the queue; SQS makes
it visible again once the visibility timeout elapses, so delivery is
at-least-once and handlers must tolerate duplicates.

The trace carrier travels in the JSON body rather than in SQS message
attributes so both transports share the same extraction path.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from notifier.config import Settings
from notifier.constants import (
    SQS_DEPTH_ATTRIBUTE,
    SQS_ERROR_BACKOFF_SECONDS,
    SQS_MAX_MESSAGES,
    SQS_WAIT_TIME_SECONDS,
    ConsumeOutcome,
    TransportKind,
)
from notifier.observability.metrics import MetricsCollector
from notifier.transport.base import MessageHandler, QueueTransport
from notifier.transport.errors import (
    ConfigurationError,
    HandlerError,
    TransportConnectionError,
)
from notifier.types.message import QueueMessage

logger = logging.getLogger(__name__)


class SQSTransport(QueueTransport):
    """
    Long-poll transport with explicit acknowledgement (delete).

    Item lifecycle:
    - Received -> Malformed -> Deleted (dropped)
    - Received -> Validated -> HandlerInvoked -> Deleted (acked)
    - Received -> Validated -> HandlerInvoked -> LeftInQueue (redelivered later)
    """

    kind = TransportKind.SQS

    def __init__(
        self,
        queue_url: str | None,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        max_messages: int = SQS_MAX_MESSAGES,
        wait_time_seconds: int = SQS_WAIT_TIME_SECONDS,
        error_backoff: float = SQS_ERROR_BACKOFF_SECONDS,
        client: Any = None,
        stop_event: asyncio.Event | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the transport.

        Args:
            queue_url: Destination queue. Required.
            region: AWS region.
            endpoint_url: Endpoint override (LocalStack).
            max_messages: Batch size per receive call.
            wait_time_seconds: Long-poll wait per receive call.
            error_backoff: Seconds to sleep after a failed receive call.
            client: Pre-built async SQS client (tests inject a fake).
            stop_event: Cancellation token shared with the caller.
            metrics: Metrics collector.

        Raises:
            ConfigurationError: ``queue_url`` is empty.
        """
        if not queue_url:
            raise ConfigurationError("SQS_QUEUE_URL environment variable is required")

        super().__init__(stop_event=stop_event, metrics=metrics)
        self.queue_url = queue_url
        self.region = region
        self.endpoint_url = endpoint_url
        self.max_messages = max_messages
        self.wait_time_seconds = wait_time_seconds
        self.error_backoff = error_backoff
        self._client = client
        self._exit_stack = AsyncExitStack()

        logger.info("SQS transport initialized", extra={"queue_url": queue_url})

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "SQSTransport":
        """Build a transport from application settings."""
        return cls(
            queue_url=settings.sqs_queue_url,
            region=settings.aws_region,
            endpoint_url=settings.sqs_endpoint,
            max_messages=settings.sqs_max_messages,
            wait_time_seconds=settings.sqs_wait_time_seconds,
            error_backoff=settings.sqs_error_backoff_seconds,
            **kwargs,
        )

    @property
    def client(self) -> Any:
        """The SQS client. Only available after ``connect``."""
        if self._client is None:
            raise TransportConnectionError("connect", "SQS transport is not connected")
        return self._client

    async def connect(self) -> None:
        """Create the SQS client unless one was injected."""
        if self._client is not None:
            return

        session = aioboto3.Session()
        try:
            self._client = await self._exit_stack.enter_async_context(
                session.client(
                    "sqs",
                    region_name=self.region,
                    endpoint_url=self.endpoint_url,
                )
            )
        except (BotoCoreError, ClientError) as e:
            self._metrics.record_transport_error(self.kind.value, "connect")
            raise TransportConnectionError("connect", str(e)) from e

        logger.info(
            "Connected to SQS",
            extra={"queue_url": self.queue_url, "region": self.region},
        )

    async def publish(self, message: QueueMessage) -> None:
        """Send the serialized message to the queue."""
        try:
            await self.client.send_message(
                QueueUrl=self.queue_url,
                MessageBody=message.to_json(),
            )
        except (BotoCoreError, ClientError) as e:
            self._metrics.record_transport_error(self.kind.value, "publish")
            raise TransportConnectionError("publish", str(e)) from e

        self._metrics.record_published(self.kind.value)

    async def receive_batch(self) -> list[dict[str, Any]]:
        """
        Long-poll for one batch of raw SQS messages.

        Returns:
            Raw message dicts (``Body``, ``ReceiptHandle``, ``MessageId``).
        """
        response = await self.client.receive_message(
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=self.max_messages,
            WaitTimeSeconds=self.wait_time_seconds,
        )
        return response.get("Messages", [])

    async def _poll_once(self, handler: MessageHandler) -> None:
        """Receive one batch and process every item in order."""
        try:
            batch = await self.receive_batch()
        except Exception as e:
            if self.stopping:
                logger.debug("Receive interrupted by shutdown", extra={"error": str(e)})
                return
            logger.error(
                "SQS receive error",
                extra={"queue_url": self.queue_url, "error": str(e)},
            )
            self._metrics.record_transport_error(self.kind.value, "receive")
            await asyncio.sleep(self.error_backoff)
            return

        for item in batch:
            try:
                await self._process(handler, item)
            except Exception:
                # One bad item must not end the loop or skip the rest of the batch
                logger.exception(
                    "Unexpected error processing SQS message",
                    extra={"message_id": item.get("MessageId")},
                )
                self._metrics.record_transport_error(self.kind.value, "process")

    async def _process(self, handler: MessageHandler, item: dict[str, Any]) -> None:
        message_id = item.get("MessageId")
        receipt_handle = item.get("ReceiptHandle")

        message = self._check(item.get("Body"))
        if message is None:
            # Delete poison messages so they don't cycle through the queue
            await self._delete(receipt_handle, message_id)
            return

        try:
            await self._dispatch(handler, message)
        except HandlerError:
            logger.exception(
                "Failed to process SQS message; left for redelivery",
                extra={"message_id": message_id},
            )
            self._metrics.record_consumed(self.kind.value, ConsumeOutcome.HANDLER_FAILED)
            return

        if await self._delete(receipt_handle, message_id):
            self._metrics.record_consumed(self.kind.value, ConsumeOutcome.ACKED)

    async def _delete(self, receipt_handle: str | None, message_id: str | None) -> bool:
        """Acknowledge a message. Returns False if the delete call failed."""
        try:
            await self.client.delete_message(
                QueueUrl=self.queue_url,
                ReceiptHandle=receipt_handle,
            )
        except Exception as e:
            # Not deleted: SQS will redeliver it
            logger.error(
                "Failed to delete SQS message",
                extra={"message_id": message_id, "error": str(e)},
            )
            self._metrics.record_transport_error(self.kind.value, "delete")
            return False
        return True

    async def get_depth(self) -> int:
        """
        Approximate number of visible messages in the queue.

        Eventually consistent; use for reporting only.

        Returns:
            The reported count, or 0 if it is missing or not an integer.
        """
        try:
            response = await self.client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=[SQS_DEPTH_ATTRIBUTE],
            )
        except (BotoCoreError, ClientError) as e:
            self._metrics.record_transport_error(self.kind.value, "get_depth")
            raise TransportConnectionError("get_depth", str(e)) from e

        raw = response.get("Attributes", {}).get(SQS_DEPTH_ATTRIBUTE)
        try:
            depth = int(raw)
        except (TypeError, ValueError):
            depth = 0

        self._metrics.update_queue_depth(self.kind.value, depth)
        return depth

    async def _release(self) -> None:
        await self._exit_stack.aclose()

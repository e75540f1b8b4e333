"""
Notification handlers.

Handlers run under the producer's trace context (set up by the transport),
so the spans opened here become children of the span that published the
message. They must tolerate duplicates: the SQS transport redelivers a
message whose handler raised.
"""

import asyncio
import logging

from notifier.constants import SPAN_PROCESS_NOTIFICATION, SPAN_SEND_NOTIFICATION
from notifier.observability.tracing import get_tracer
from notifier.types.message import QueueMessage

logger = logging.getLogger(__name__)

# Simulated latency of the email provider
SEND_DELAY_SECONDS = 0.1


async def process_notification(notification: QueueMessage) -> None:
    """
    Process one notification taken off the queue.

    Exceptions are recorded on the span and propagate to the transport,
    which applies its delivery policy.
    """
    with get_tracer().start_as_current_span(SPAN_PROCESS_NOTIFICATION) as span:
        span.set_attribute("notification.type", notification.type)
        span.set_attribute("notification.order_id", notification.order_id)
        span.set_attribute("notification.user_id", notification.user_id)

        logger.info(
            "Processing notification",
            extra={
                "type": notification.type,
                "order_id": notification.order_id,
                "user_name": notification.user_name,
                "total": notification.total,
            },
        )
        span.add_event("Notification received from queue")

        await send_notification(notification)

        span.add_event("Notification processed successfully")


async def send_notification(notification: QueueMessage) -> None:
    """Simulate delivering the notification by email."""
    with get_tracer().start_as_current_span(SPAN_SEND_NOTIFICATION) as span:
        span.set_attribute("notification.channel", "email")
        span.add_event("Sending email notification")

        await asyncio.sleep(SEND_DELAY_SECONDS)

        logger.info(
            "Email sent",
            extra={"user_name": notification.user_name, "order_id": notification.order_id},
        )
        span.add_event("Email sent successfully")

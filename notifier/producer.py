"""
Producer-side helper for publishing notifications.
"""

import logging
from datetime import UTC, datetime

from notifier.observability.tracing import inject_carrier
from notifier.transport.base import QueueTransport
from notifier.types.message import QueueMessage

logger = logging.getLogger(__name__)


async def publish_notification(
    transport: QueueTransport,
    type: str,
    order_id: int | float,
    user_id: int | float,
    user_name: str,
    total: int | float,
    timestamp: str | None = None,
) -> QueueMessage:
    """
    Build a notification envelope and publish it.

    The trace carrier is captured here, in the producer's context, so the
    consumer's spans join the producer's trace.

    Args:
        transport: Connected transport to publish on.
        type: Notification category, e.g. "order_created".
        order_id: Order identifier.
        user_id: User identifier.
        user_name: Recipient display name.
        total: Order total.
        timestamp: ISO-8601 timestamp. Defaults to now (UTC).

    Returns:
        The published message, including its trace carrier.

    Raises:
        TransportConnectionError: The backend rejected the publish.
    """
    message = inject_carrier(
        {
            "type": type,
            "orderId": order_id,
            "userId": user_id,
            "userName": user_name,
            "total": total,
            "timestamp": timestamp or datetime.now(UTC).isoformat(),
        }
    )

    await transport.publish(message)

    logger.info(
        "Notification published",
        extra={"type": type, "order_id": order_id, "transport": transport.kind.value},
    )
    return message

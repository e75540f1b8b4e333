"""
Queue transports.

Use ``create_transport`` to get a connected transport for the configured
backend (QUEUE_TRANSPORT=redis|sqs).
"""

import asyncio
from typing import Any

from notifier.config import Settings, get_settings
from notifier.constants import TransportKind
from notifier.transport.base import MessageHandler, QueueTransport
from notifier.transport.errors import (
    ConfigurationError,
    HandlerError,
    QueueError,
    TransportConnectionError,
)
from notifier.transport.local import RedisTransport
from notifier.transport.managed import SQSTransport
from notifier.transport.validation import (
    FieldError,
    ParseError,
    ShapeError,
    TraceContextError,
    ValidationFailure,
    is_valid,
    validate,
)


def build_transport(
    settings: Settings | None = None,
    stop_event: asyncio.Event | None = None,
    **kwargs: Any,
) -> QueueTransport:
    """
    Build the transport selected by configuration without connecting it.

    Raises:
        ConfigurationError: Required settings for the backend are missing.
    """
    settings = settings or get_settings()

    match settings.queue_transport:
        case TransportKind.REDIS:
            return RedisTransport.from_settings(settings, stop_event=stop_event, **kwargs)
        case TransportKind.SQS:
            return SQSTransport.from_settings(settings, stop_event=stop_event, **kwargs)
        case other:
            raise ConfigurationError(f"Unknown queue transport: {other!r}")


async def create_transport(
    settings: Settings | None = None,
    stop_event: asyncio.Event | None = None,
    **kwargs: Any,
) -> QueueTransport:
    """
    Build and connect the configured transport.

    Raises:
        ConfigurationError: Required settings for the backend are missing.
        TransportConnectionError: The backend could not be reached.
    """
    transport = build_transport(settings, stop_event=stop_event, **kwargs)
    await transport.connect()
    return transport


__all__ = [
    "QueueTransport",
    "MessageHandler",
    "RedisTransport",
    "SQSTransport",
    "build_transport",
    "create_transport",
    # Errors
    "QueueError",
    "ConfigurationError",
    "TransportConnectionError",
    "HandlerError",
    # Validation
    "validate",
    "is_valid",
    "ValidationFailure",
    "ParseError",
    "ShapeError",
    "FieldError",
    "TraceContextError",
]

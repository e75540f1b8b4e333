"""
Type definitions for the notification service.
Contains the queue envelope and API input/output types.
"""

from notifier.types.api import (
    HealthResponse,
    PublishNotificationRequest,
    PublishNotificationResponse,
    StatsResponse,
)
from notifier.types.message import QueueMessage

__all__ = [
    # Queue types
    "QueueMessage",
    # API types
    "PublishNotificationRequest",
    "PublishNotificationResponse",
    "HealthResponse",
    "StatsResponse",
]

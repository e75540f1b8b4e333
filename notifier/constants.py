"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class TransportKind(StrEnum):
    """Queue backends a transport can be built for."""

    REDIS = "redis"
    SQS = "sqs"


class ConsumeOutcome(StrEnum):
    """
    What happened to a retrieved item.

    - ACKED: handler succeeded and the item was removed
    - MALFORMED: failed validation and was discarded/deleted
    - HANDLER_FAILED: handler raised; SQS leaves it for redelivery
    - LOST: handler raised after a Redis pop; the item is gone
    """

    ACKED = "acked"
    MALFORMED = "malformed"
    HANDLER_FAILED = "handler_failed"
    LOST = "lost"


DEFAULT_QUEUE_NAME = "notifications"
SERVICE_NAME = "notification-service"

# Redis blocking pop
REDIS_POP_TIMEOUT_SECONDS = 1
REDIS_ERROR_BACKOFF_SECONDS = 1.0

# SQS long polling
SQS_MAX_MESSAGES = 10
SQS_WAIT_TIME_SECONDS = 5
SQS_ERROR_BACKOFF_SECONDS = 2.0
SQS_DEPTH_ATTRIBUTE = "ApproximateNumberOfMessages"

# Truncation for raw payloads in logs
LOG_PREVIEW_CHARS = 200

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_MESSAGES_PUBLISHED = "queue_messages_published_total"
METRIC_MESSAGES_CONSUMED = "queue_messages_consumed_total"
METRIC_TRANSPORT_ERRORS = "queue_transport_errors_total"
METRIC_HANDLER_DURATION = "queue_handler_duration_seconds"
METRIC_QUEUE_DEPTH = "queue_depth"

# Trace span names
SPAN_PROCESS_NOTIFICATION = "process-notification"
SPAN_SEND_NOTIFICATION = "send-notification"

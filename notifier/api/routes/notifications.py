"""
Notification publishing routes.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from notifier.api.deps import CurrentWorker
from notifier.constants import API_V1_PREFIX
from notifier.producer import publish_notification
from notifier.transport import TransportConnectionError
from notifier.types.api import PublishNotificationRequest, PublishNotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/notifications", tags=["Notifications"])


@router.post(
    "",
    response_model=PublishNotificationResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a notification",
    description="Publish a notification on the configured queue transport.",
)
async def create_notification(
    request: PublishNotificationRequest,
    worker: CurrentWorker,
) -> PublishNotificationResponse:
    """
    Publish a notification.

    The request's trace context is injected into the envelope, so the
    consumer's processing shows up in the same trace.

    Raises:
        HTTPException: 503 if no transport is active or the publish failed.
    """
    if worker is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Queue transport is not available",
        )

    try:
        message = await publish_notification(
            worker.transport,
            type=request.type,
            order_id=request.order_id,
            user_id=request.user_id,
            user_name=request.user_name,
            total=request.total,
        )
    except TransportConnectionError as e:
        logger.error("Publish failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to publish notification",
        ) from e

    return PublishNotificationResponse(
        transport=worker.transport.kind.value,
        envelope=message.to_wire(),
    )

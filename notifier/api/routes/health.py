"""
Health check routes.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import Response

from notifier.api.deps import CurrentWorker
from notifier.config import get_settings
from notifier.constants import SERVICE_NAME, TransportKind
from notifier.observability.metrics import get_metrics
from notifier.transport import TransportConnectionError
from notifier.types.api import HealthResponse, StatsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the service and its queue consumer.",
)
async def health_check(worker: CurrentWorker) -> HealthResponse:
    """
    Perform a health check.

    The service stays up without a queue so the failure is visible here
    instead of as a crash loop.
    """
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        queue_active=worker is not None,
    )


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Service stats",
    description="Report the active transport and, for SQS, the approximate queue depth.",
)
async def stats(worker: CurrentWorker) -> StatsResponse:
    """
    Report consumer stats.

    Queue depth is advisory and only reported by SQS.
    """
    depth = None
    if worker is not None and worker.transport.kind is TransportKind.SQS:
        try:
            depth = await worker.transport.get_depth()
        except TransportConnectionError as e:
            logger.warning("Could not read queue depth", extra={"error": str(e)})

    return StatsResponse(
        service=SERVICE_NAME,
        queue_active=worker is not None,
        transport=worker.transport.kind.value if worker else get_settings().queue_transport.value,
        queue_depth=depth,
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )

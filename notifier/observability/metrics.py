"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from notifier.constants import (
    METRIC_HANDLER_DURATION,
    METRIC_MESSAGES_CONSUMED,
    METRIC_MESSAGES_PUBLISHED,
    METRIC_QUEUE_DEPTH,
    METRIC_TRANSPORT_ERRORS,
    ConsumeOutcome,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queue transports.

    Collects metrics for:
    - Messages published
    - Messages consumed, by outcome
    - Transport-level errors
    - Handler duration
    - Queue depth (advisory)
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.messages_published = Counter(
            METRIC_MESSAGES_PUBLISHED,
            "Total number of messages published",
            ["transport"],
            registry=self._registry,
        )

        self.messages_consumed = Counter(
            METRIC_MESSAGES_CONSUMED,
            "Total number of messages retrieved, by outcome",
            ["transport", "outcome"],
            registry=self._registry,
        )

        self.transport_errors = Counter(
            METRIC_TRANSPORT_ERRORS,
            "Total number of transport-level errors",
            ["transport", "operation"],
            registry=self._registry,
        )

        self.handler_duration = Histogram(
            METRIC_HANDLER_DURATION,
            "Message handler duration in seconds",
            ["transport"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Approximate number of messages waiting in the queue",
            ["transport"],
            registry=self._registry,
        )

    def record_published(self, transport: str) -> None:
        """Record a published message."""
        self.messages_published.labels(transport=transport).inc()

    def record_consumed(self, transport: str, outcome: ConsumeOutcome) -> None:
        """Record what happened to a retrieved message."""
        self.messages_consumed.labels(transport=transport, outcome=outcome.value).inc()

    def record_transport_error(self, transport: str, operation: str) -> None:
        """Record a transport-level failure."""
        self.transport_errors.labels(transport=transport, operation=operation).inc()

    def observe_handler(self, transport: str, duration_seconds: float) -> None:
        """Record how long a handler call took."""
        self.handler_duration.labels(transport=transport).observe(duration_seconds)

    def update_queue_depth(self, transport: str, depth: int) -> None:
        """Update the advisory queue depth."""
        self.queue_depth.labels(transport=transport).set(depth)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics

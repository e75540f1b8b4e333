"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from notifier.observability.logging import setup_logging
from notifier.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from notifier.observability.tracing import (
    extract_context,
    get_tracer,
    inject_carrier,
    setup_tracing,
    use_carrier,
)

__all__ = [
    "setup_logging",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "inject_carrier",
    "extract_context",
    "use_carrier",
]

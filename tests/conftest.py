"""
Pytest configuration and shared fixtures.
"""

import asyncio
from typing import Any

import pytest
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags
from prometheus_client import CollectorRegistry

from notifier.observability.metrics import MetricsCollector
from tests.fakes import SPAN_ID, TRACE_ID


@pytest.fixture
def stop_event() -> asyncio.Event:
    """Cancellation token shared by a transport and its fake client."""
    return asyncio.Event()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Metrics collector bound to an isolated registry."""
    return MetricsCollector(registry=registry)


@pytest.fixture
def message_fields() -> dict[str, Any]:
    """Wire fields of a valid notification without a carrier."""
    return {
        "type": "order_created",
        "orderId": 1,
        "userId": 7,
        "userName": "a",
        "total": 9.5,
        "timestamp": "t",
    }


@pytest.fixture
def producer_context() -> Context:
    """Context holding a sampled span, as a producer would have."""
    span_context = SpanContext(
        trace_id=TRACE_ID,
        span_id=SPAN_ID,
        is_remote=False,
        trace_flags=TraceFlags(TraceFlags.SAMPLED),
    )
    return trace.set_span_in_context(NonRecordingSpan(span_context))


@pytest.fixture
def backoffs(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """
    Record every non-zero ``asyncio.sleep`` delay.

    The sleep still yields to the loop, so fakes that call ``sleep(0)``
    keep working; only the delay itself is skipped.
    """
    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def recording_sleep(delay: float, *args: Any, **kwargs: Any) -> None:
        if delay:
            delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", recording_sleep)
    return delays

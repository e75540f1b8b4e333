"""
OpenTelemetry tracing setup and queue trace propagation.

Neither Redis nor SQS carries trace context for us, so the producer injects
it into the message body (``traceContext``) and the consumer extracts it
before calling the handler. The encoding is whatever the global propagator
writes (W3C tracecontext + baggage by default); this module only moves the
flat string map around.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from opentelemetry import context as otel_context
from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

from notifier import __version__
from notifier.config import get_settings
from notifier.types.message import QueueMessage

# Global tracer instance
_tracer: Tracer | None = None


def setup_tracing(enable_console_export: bool = False) -> Tracer:
    """
    Set up OpenTelemetry tracing.

    Args:
        enable_console_export: If True, also export spans to console.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer

    settings = get_settings()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    otlp_exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        insecure=True,
    )
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(settings.otel_service_name)

    return _tracer


def shutdown_tracing() -> None:
    """Flush and shut down the SDK tracer provider, if one is installed."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()


def instrument_fastapi(app: Any) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: The FastAPI application instance.
    """
    FastAPIInstrumentor.instrument_app(app)


def get_tracer() -> Tracer:
    """
    Get the tracer instance.

    Falls back to the global provider's tracer when ``setup_tracing`` has not
    been called, so library code never installs a provider by itself.
    """
    if _tracer is None:
        return trace.get_tracer(get_settings().otel_service_name)
    return _tracer


def inject_carrier(
    base: QueueMessage | Mapping[str, Any],
    context: Context | None = None,
) -> QueueMessage:
    """
    Build a message carrying the producer's trace context.

    Args:
        base: Message fields (wire or attribute names) or an existing message.
            Any carrier already present is replaced.
        context: Context to inject. Defaults to the active context.

    Returns:
        A new QueueMessage with ``trace_context`` set. The map is empty when
        there is no active trace.
    """
    carrier: dict[str, str] = {}
    propagate.inject(carrier, context=context)

    if isinstance(base, QueueMessage):
        return base.model_copy(update={"trace_context": carrier})

    fields = {k: v for k, v in base.items() if k not in ("traceContext", "trace_context")}
    fields["traceContext"] = carrier
    return QueueMessage.model_validate(fields)


def extract_context(carrier: Mapping[str, str] | None) -> Context:
    """
    Rebuild the producer's context from a carrier.

    An absent or empty carrier yields the root context, so the handler still
    runs, just without a parent span.
    """
    if not carrier:
        return Context()
    return propagate.extract(carrier, context=Context())


@contextmanager
def use_carrier(carrier: Mapping[str, str] | None) -> Iterator[Context]:
    """
    Run a block under the context extracted from ``carrier``.

    Example:
        with use_carrier(message.trace_context):
            await handler(message)
    """
    ctx = extract_context(carrier)
    token = otel_context.attach(ctx)
    try:
        yield ctx
    finally:
        otel_context.detach(token)

"""OpenTelemetry tracing for collection queries and transaction rollbacks."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Status, StatusCode

from record_store import __version__
from record_store.infrastructure.config import ObservabilityConfig


_tracer: trace.Tracer | None = None


def setup_tracing(
    observability: ObservabilityConfig | None = None,
    console_export: bool = False,
    exporter: SpanExporter | None = None,
    set_global: bool = True,
) -> trace.Tracer:
    """
    Set up OpenTelemetry tracing.

    Args:
        observability: Service name and OTLP endpoint; defaults from config
        console_export: Whether to also export to console (for debugging)
        exporter: Extra exporter, flushed synchronously on every span end
        set_global: Install the provider process-wide. OpenTelemetry only
            honours the first global provider, so pass False to swap
            tracers (e.g. in tests).

    Returns:
        The tracer used by ``trace_span``
    """
    global _tracer

    observability = observability or ObservabilityConfig()
    service_name = observability.otel_service_name

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": service_name, "service.version": __version__}
        )
    )

    if observability.otel_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=observability.otel_endpoint, insecure=True))
        )
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))

    if set_global:
        trace.set_tracer_provider(provider)

    _tracer = provider.get_tracer(service_name, __version__)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the tracer from ``setup_tracing``, or the global one if never set up."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("record_store", __version__)
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Run the body inside a span named ``name``, e.g. "transaction.rollback".

    Attributes whose value is None are skipped. An exception escaping the
    body marks the span as failed and is re-raised.
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            raise

"""Infrastructure layer - cross-cutting concerns."""

from record_store.infrastructure.config import Config, get_config
from record_store.infrastructure.logging import setup_logging, get_logger
from record_store.infrastructure.metrics import MetricsRegistry, get_metrics
from record_store.infrastructure.tracing import setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "MetricsRegistry",
    "get_metrics",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]

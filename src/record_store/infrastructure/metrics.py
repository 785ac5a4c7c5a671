"""Prometheus metrics for the record store."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all record store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Transaction metrics
        self.transactions_total = Counter(
            "record_store_transactions_total",
            "Total number of finished transactions",
            ["outcome"],  # rolled_back, ended, expired
            registry=self._registry,
        )

        self.transactions_active = Gauge(
            "record_store_transactions_active",
            "Number of registered transactions",
            registry=self._registry,
        )

        # Undo log metrics
        self.compensations_total = Counter(
            "record_store_compensations_total",
            "Compensating actions recorded",
            ["operation"],  # save, update, delete, delete_by_id
            registry=self._registry,
        )

        self.compensations_replayed_total = Counter(
            "record_store_compensations_replayed_total",
            "Compensating actions applied during rollback",
            registry=self._registry,
        )

        # Query metrics
        self.select_latency_seconds = Histogram(
            "record_store_select_latency_seconds",
            "Select execution latency in seconds",
            ["mode"],  # one, array
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics

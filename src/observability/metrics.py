"""
Prometheus metrics for monitoring the folder sync service.

Defines and exposes metrics for:
- Polling cycles and their outcome
- Per-item outcomes (provisioned, skipped, failed)
- Provisioning steps (template copy, empty create)
- Token refreshes
- Fetch and cycle latency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging
from datetime import datetime

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the sync service.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_item("provisioned")
        metrics.record_cycle("completed", latency=1.2)
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        """Initialize Prometheus metrics."""
        self._registry = registry

        self.cycles = Counter(
            "job_folder_sync_cycles_total",
            "Total polling cycles",
            ["status"],  # completed, skipped, failed
            registry=registry,
        )

        self.items = Counter(
            "job_folder_sync_items_total",
            "Items seen by the sync engine",
            ["outcome"],
            registry=registry,
        )

        self.provision_steps = Counter(
            "job_folder_sync_provision_steps_total",
            "Provisioning step attempts",
            ["step", "outcome"],  # step: copy_template, create_empty
            registry=registry,
        )

        self.token_refreshes = Counter(
            "job_folder_sync_token_refreshes_total",
            "Tracking-system token refresh attempts",
            ["result"],  # success, failure
            registry=registry,
        )

        self.fetch_latency = Histogram(
            "job_folder_sync_fetch_latency_seconds",
            "Time to fetch the job list from the tracking system",
            buckets=LATENCY_BUCKETS,
            registry=registry,
        )

        self.cycle_latency = Histogram(
            "job_folder_sync_cycle_latency_seconds",
            "Time to run one complete polling cycle",
            buckets=LATENCY_BUCKETS,
            registry=registry,
        )

        self.checkpoint = Gauge(
            "job_folder_sync_checkpoint_timestamp_seconds",
            "Unix time of the current fetch window lower bound",
            registry=registry,
        )

        self.destinations_resolved = Gauge(
            "job_folder_sync_destinations_resolved",
            "Number of destination folders resolved at startup",
            registry=registry,
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=self._registry)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_cycle(self, status: str, latency: float | None = None) -> None:
        """Record the end of a polling cycle."""
        self.cycles.labels(status=status).inc()
        if latency is not None:
            self.cycle_latency.observe(latency)

    def record_item(self, outcome: str) -> None:
        """Record the outcome of one item."""
        self.items.labels(outcome=outcome).inc()

    def record_provision_step(self, step: str, outcome: str) -> None:
        """Record one provisioning attempt."""
        self.provision_steps.labels(step=step, outcome=outcome).inc()

    def record_token_refresh(self, success: bool) -> None:
        """Record a token refresh attempt."""
        self.token_refreshes.labels(result="success" if success else "failure").inc()

    def record_fetch(self, latency: float) -> None:
        """Record tracking-system fetch latency."""
        self.fetch_latency.observe(latency)

    def set_checkpoint(self, last_checked: datetime) -> None:
        """Publish the current checkpoint."""
        self.checkpoint.set(last_checked.timestamp())

    def set_destinations_resolved(self, count: int) -> None:
        """Publish how many destination categories resolved."""
        self.destinations_resolved.set(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics

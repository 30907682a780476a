"""Tests for Prometheus metrics collection."""

from datetime import datetime, timezone

import pytest
from prometheus_client import CollectorRegistry

from src.observability.metrics import MetricsCollector, get_metrics


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry) -> MetricsCollector:
    return MetricsCollector(registry=registry)


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_record_cycle(self, metrics, registry):
        metrics.record_cycle("completed", latency=1.5)
        metrics.record_cycle("skipped")

        assert registry.get_sample_value("job_folder_sync_cycles_total", {"status": "completed"}) == 1.0
        assert registry.get_sample_value("job_folder_sync_cycles_total", {"status": "skipped"}) == 1.0

    def test_record_item(self, metrics, registry):
        metrics.record_item("provisioned")
        metrics.record_item("provisioned")

        assert registry.get_sample_value("job_folder_sync_items_total", {"outcome": "provisioned"}) == 2.0

    def test_record_token_refresh(self, metrics, registry):
        metrics.record_token_refresh(True)
        metrics.record_token_refresh(False)

        assert registry.get_sample_value("job_folder_sync_token_refreshes_total", {"result": "success"}) == 1.0
        assert registry.get_sample_value("job_folder_sync_token_refreshes_total", {"result": "failure"}) == 1.0

    def test_set_checkpoint(self, metrics, registry):
        checkpoint = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)

        metrics.set_checkpoint(checkpoint)

        assert registry.get_sample_value("job_folder_sync_checkpoint_timestamp_seconds") == checkpoint.timestamp()

    def test_set_destinations_resolved(self, metrics, registry):
        metrics.set_destinations_resolved(2)

        assert registry.get_sample_value("job_folder_sync_destinations_resolved") == 2.0


def test_get_metrics_is_singleton():
    assert get_metrics() is get_metrics()

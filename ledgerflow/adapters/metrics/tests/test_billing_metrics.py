"""Tests for PrometheusBillingMetrics and the Prometheus renderer.

Each test creates a fresh adapter with its own CollectorRegistry, so tests
are fully isolated.
"""

from prometheus_client import CollectorRegistry

from ledgerflow.adapters.metrics import (
    FakeBillingMetrics,
    PrometheusBillingMetrics,
    PrometheusMetricsRenderer,
)
from ledgerflow.adapters.metrics.renderer import split_content_type


def _make_adapter() -> tuple[PrometheusBillingMetrics, CollectorRegistry]:
    registry = CollectorRegistry()
    return PrometheusBillingMetrics(registry=registry), registry


def _render(registry: CollectorRegistry) -> str:
    return PrometheusMetricsRenderer(registry).generate().decode("utf-8")


def test_counters_accumulate():
    adapter, registry = _make_adapter()

    adapter.inc_events_claimed(120)
    adapter.inc_events_claimed(30)
    adapter.inc_jobs_published(4)
    adapter.inc_batch_rollbacks()
    adapter.inc_batches_finalized(2)
    adapter.inc_claims_reclaimed(7)

    text = _render(registry)
    assert "ledgerflow_usage_events_claimed_total 150.0" in text
    assert "ledgerflow_billing_jobs_published_total 4.0" in text
    assert "ledgerflow_batch_rollbacks_total 1.0" in text
    assert "ledgerflow_batches_finalized_total 2.0" in text
    assert "ledgerflow_stale_claims_reclaimed_total 7.0" in text


def test_debits_labelled_by_outcome():
    adapter, registry = _make_adapter()

    adapter.inc_debits("debited")
    adapter.inc_debits("debited")
    adapter.inc_debits("insufficient")

    text = _render(registry)
    assert 'ledgerflow_debits_total{outcome="debited"} 2.0' in text
    assert 'ledgerflow_debits_total{outcome="insufficient"} 1.0' in text


def test_orchestration_duration_histogram():
    adapter, registry = _make_adapter()

    adapter.observe_orchestration_duration(0.3)

    text = _render(registry)
    assert "ledgerflow_orchestration_duration_seconds_count 1.0" in text
    assert 'ledgerflow_orchestration_duration_seconds_bucket{le="0.5"} 1.0' in text
    assert 'ledgerflow_orchestration_duration_seconds_bucket{le="0.25"} 0.0' in text


def test_two_adapters_do_not_collide():
    """Separate registries mean no duplicate-timeseries errors."""
    first, _ = _make_adapter()
    second, _ = _make_adapter()

    first.inc_batch_rollbacks()
    second.inc_batch_rollbacks()


def test_renderer_content_type():
    renderer = PrometheusMetricsRenderer(CollectorRegistry())

    assert renderer.content_type.startswith("text/plain")
    assert "charset" not in renderer.content_type
    assert renderer.charset == "utf-8"


def test_split_content_type():
    assert split_content_type("text/plain; version=0.0.4; charset=utf-8") == (
        "text/plain; version=0.0.4",
        "utf-8",
    )
    assert split_content_type("application/json") == ("application/json", "utf-8")


def test_fake_records_and_clears():
    fake = FakeBillingMetrics()

    fake.inc_debits("duplicate")
    fake.inc_events_claimed(3)
    fake.observe_orchestration_duration(1.5)

    assert fake.debits["duplicate"] == 1
    assert fake.events_claimed == 3
    assert fake.orchestration_durations == [1.5]

    fake.clear()
    assert fake.events_claimed == 0
    assert not fake.debits

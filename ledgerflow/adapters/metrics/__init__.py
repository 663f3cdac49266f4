"""Metrics adapters: Prometheus and Fake implementations."""

from ledgerflow.adapters.metrics.billing import FakeBillingMetrics, PrometheusBillingMetrics
from ledgerflow.adapters.metrics.renderer import FakeMetricsRenderer, PrometheusMetricsRenderer

__all__ = [
    "FakeBillingMetrics",
    "FakeMetricsRenderer",
    "PrometheusBillingMetrics",
    "PrometheusMetricsRenderer",
]

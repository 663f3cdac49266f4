"""Core protocols for dependency injection."""

from ledgerflow.core.protocols.job_queue import BillingJobQueue, QueuedJob
from ledgerflow.core.protocols.metrics import BillingMetrics, MetricsRenderer

__all__ = ["BillingJobQueue", "BillingMetrics", "MetricsRenderer", "QueuedJob"]

"""Metrics protocols for dependency injection.

- BillingMetrics: billing pipeline counters
- MetricsRenderer: metrics serialization for scraping
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BillingMetrics(Protocol):
    """Protocol for billing pipeline instrumentation."""

    def inc_events_claimed(self, count: int) -> None:
        """Count usage events moved into a batch."""
        ...

    def inc_jobs_published(self, count: int) -> None:
        """Count billing jobs handed to the queue."""
        ...

    def inc_batch_rollbacks(self) -> None:
        """Count claims rolled back after a failed hand-off."""
        ...

    def inc_batches_finalized(self, count: int) -> None:
        """Count batches proven settled and marked PROCESSED."""
        ...

    def inc_claims_reclaimed(self, count: int) -> None:
        """Count stale claims released by the reclaim sweep."""
        ...

    def inc_debits(self, outcome: str) -> None:
        """Count settlement attempts by outcome.

        Args:
            outcome: debited, duplicate, insufficient_balance or error.
        """
        ...

    def observe_orchestration_duration(self, duration: float) -> None:
        """Record the wall time of one orchestrator run in seconds."""
        ...


@runtime_checkable
class MetricsRenderer(Protocol):
    """Protocol for rendering collected metrics for a scraper."""

    @property
    def content_type(self) -> str:
        """Media type of the rendered output."""
        ...

    @property
    def charset(self) -> str:
        """Character set of the rendered output."""
        ...

    def generate(self) -> bytes:
        """Serialize every registered metric."""
        ...

"""Billing pipeline metrics adapters (Prometheus + Fake).

Prometheus implementation registers its counters on the shared
CollectorRegistry served by the metrics server.
"""

from collections import Counter as TallyCounter

from prometheus_client import CollectorRegistry, Counter, Histogram

from ledgerflow.core.protocols.metrics import BillingMetrics

_ORCHESTRATION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class PrometheusBillingMetrics(BillingMetrics):
    """Prometheus-backed billing pipeline metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._events_claimed = Counter(
            "ledgerflow_usage_events_claimed_total",
            "Usage events moved into a billing batch",
            registry=self._registry,
        )

        self._jobs_published = Counter(
            "ledgerflow_billing_jobs_published_total",
            "Billing jobs handed to the job queue",
            registry=self._registry,
        )

        self._batch_rollbacks = Counter(
            "ledgerflow_batch_rollbacks_total",
            "Claims rolled back after a failed hand-off",
            registry=self._registry,
        )

        self._batches_finalized = Counter(
            "ledgerflow_batches_finalized_total",
            "Batches proven settled and marked processed",
            registry=self._registry,
        )

        self._claims_reclaimed = Counter(
            "ledgerflow_stale_claims_reclaimed_total",
            "Stale claims released by the reclaim sweep",
            registry=self._registry,
        )

        self._debits = Counter(
            "ledgerflow_debits_total",
            "Billing job settlement attempts by outcome",
            ["outcome"],
            registry=self._registry,
        )

        self._orchestration_duration = Histogram(
            "ledgerflow_orchestration_duration_seconds",
            "Wall time of one orchestrator run",
            buckets=_ORCHESTRATION_BUCKETS,
            registry=self._registry,
        )

    # -- BillingMetrics protocol methods --

    def inc_events_claimed(self, count: int) -> None:
        self._events_claimed.inc(count)

    def inc_jobs_published(self, count: int) -> None:
        self._jobs_published.inc(count)

    def inc_batch_rollbacks(self) -> None:
        self._batch_rollbacks.inc()

    def inc_batches_finalized(self, count: int) -> None:
        self._batches_finalized.inc(count)

    def inc_claims_reclaimed(self, count: int) -> None:
        self._claims_reclaimed.inc(count)

    def inc_debits(self, outcome: str) -> None:
        self._debits.labels(outcome=outcome).inc()

    def observe_orchestration_duration(self, duration: float) -> None:
        self._orchestration_duration.observe(duration)


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


class FakeBillingMetrics(BillingMetrics):
    """In-memory spy implementing the BillingMetrics protocol."""

    def __init__(self) -> None:
        self.events_claimed: int = 0
        self.jobs_published: int = 0
        self.batch_rollbacks: int = 0
        self.batches_finalized: int = 0
        self.claims_reclaimed: int = 0
        self.debits: TallyCounter[str] = TallyCounter()
        self.orchestration_durations: list[float] = []

    def inc_events_claimed(self, count: int) -> None:
        self.events_claimed += count

    def inc_jobs_published(self, count: int) -> None:
        self.jobs_published += count

    def inc_batch_rollbacks(self) -> None:
        self.batch_rollbacks += 1

    def inc_batches_finalized(self, count: int) -> None:
        self.batches_finalized += count

    def inc_claims_reclaimed(self, count: int) -> None:
        self.claims_reclaimed += count

    def inc_debits(self, outcome: str) -> None:
        self.debits[outcome] += 1

    def observe_orchestration_duration(self, duration: float) -> None:
        self.orchestration_durations.append(duration)

    # -- test helpers --

    def clear(self) -> None:
        """Reset all recorded state."""
        self.__init__()

"""Dependency injection container.

An immutable dataclass holding the protocol implementations one process
needs. It has no construction logic; that belongs in the factory.
"""

from dataclasses import dataclass, replace
from typing import Any

from ledgerflow.core.protocols import BillingJobQueue, BillingMetrics, MetricsRenderer
from ledgerflow.domains.billing.protocols import (
    BatchReconcilerProtocol,
    BillingCommandHandlerProtocol,
    BillingJobSettlerProtocol,
    BillingOrchestratorProtocol,
)
from ledgerflow.domains.ledger.protocols import LedgerProtocol
from ledgerflow.domains.usage_events.ingestion import UsageEventIngestor
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: the global container built by the factory
        from ledgerflow.core.container import container
        await container.orchestrator.run()

        # Testing: construct directly with fakes
        test_container = Container(store=UsageEventService(FakeUsageEventRepository()), ...)
    """

    # Usage event store (PENDING -> QUEUING -> QUEUED -> PROCESSED)
    store: UsageEventStoreProtocol

    # Ledger: FIFO debits, credits, proof of payment
    ledger: LedgerProtocol

    # Billing job hand-off between orchestrator and settlement consumers
    job_queue: BillingJobQueue

    # Metrics
    metrics: BillingMetrics
    renderer: MetricsRenderer

    # Billing domain
    reconciler: BatchReconcilerProtocol
    orchestrator: BillingOrchestratorProtocol
    settler: BillingJobSettlerProtocol
    command_handler: BillingCommandHandlerProtocol

    # Gateway log ingestion
    ingestor: UsageEventIngestor

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

            modified = container.replace(job_queue=FakeBillingJobQueue())
        """
        return replace(self, **changes)

"""Billing domain protocols."""

from datetime import timedelta
from typing import Optional, Protocol, Sequence, runtime_checkable
from uuid import UUID

from ledgerflow.domains.billing.types import SettlementDecision
from ledgerflow.schemas.billing import (
    BatchCreationReport,
    BatchSettlement,
    BillingJob,
    OrchestrationReport,
    ReclaimReport,
    ReconciliationReport,
    RepublishReport,
)
from ledgerflow.schemas.billing_commands import BillingCommand, BillingCommandResponse


@runtime_checkable
class BatchReconcilerProtocol(Protocol):
    """Finalizes QUEUED batches whose proof of payment is complete."""

    async def check_batch(self, batch_id: UUID) -> BatchSettlement:
        """Expected vs. settled organizations for one batch."""
        ...

    async def reconcile(self) -> ReconciliationReport:
        """Check every QUEUED batch and finalize the settled ones."""
        ...


@runtime_checkable
class BillingOrchestratorProtocol(Protocol):
    """Periodic driver of the billing pipeline."""

    async def run(self) -> OrchestrationReport:
        """Reconcile, then create and publish one batch."""
        ...

    async def create_batch(self) -> BatchCreationReport:
        """Claim, aggregate, publish and confirm one batch."""
        ...

    async def reclaim_stale_claims(self, older_than: Optional[timedelta] = None) -> ReclaimReport:
        """Resolve batches stuck in QUEUING."""
        ...

    async def republish_unsettled(self, batch_id: UUID) -> RepublishReport:
        """Re-send jobs of a QUEUED batch for organizations that have not paid."""
        ...


@runtime_checkable
class BillingJobSettlerProtocol(Protocol):
    """Debits delivered billing jobs."""

    async def settle(self, job: BillingJob) -> SettlementDecision:
        """Debit one job and decide ack or retry."""
        ...

    async def settle_many(self, jobs: Sequence[BillingJob]) -> list[SettlementDecision]:
        """Settle jobs concurrently, decisions in input order."""
        ...


@runtime_checkable
class BillingCommandHandlerProtocol(Protocol):
    """Executes internal billing commands."""

    async def handle(self, command: BillingCommand) -> BillingCommandResponse:
        """Run one command."""
        ...

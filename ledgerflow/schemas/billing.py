"""Billing pipeline schemas: jobs handed to the queue and run reports."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BillingJob(BaseModel):
    """One organization's share of one batch, to be debited exactly once.

    ``job_id`` is derived from ``(batch_id, organization_id)`` so a job that
    is published twice still settles at most once.
    """

    job_id: UUID
    batch_id: UUID
    organization_id: str
    total_cost_in_units: int = Field(..., ge=0)


class BatchSettlement(BaseModel):
    """Expected vs. settled organization counts for one QUEUED batch."""

    batch_id: UUID
    expected: int
    actual: int

    @property
    def is_settled(self) -> bool:
        """A batch is settled once every implicated organization has paid."""
        return self.expected > 0 and self.expected == self.actual


class ReconciliationReport(BaseModel):
    """Result of one reconciliation pass over QUEUED batches."""

    checked: int = 0
    finalized: list[UUID] = Field(default_factory=list)
    unsettled: list[BatchSettlement] = Field(default_factory=list)
    failed: list[UUID] = Field(default_factory=list)
    events_processed: int = 0


class BatchCreationReport(BaseModel):
    """Result of one claim -> aggregate -> publish -> confirm attempt."""

    batch_id: Optional[UUID] = None
    claimed: int = 0
    organizations: int = 0
    jobs_published: int = 0
    confirmed: int = 0
    rolled_back: bool = False
    error: Optional[str] = None


class OrchestrationReport(BaseModel):
    """Result of one orchestrator run (reconciliation, then batch creation)."""

    reconciliation: Optional[ReconciliationReport] = None
    reconciliation_error: Optional[str] = None
    batch: BatchCreationReport = Field(default_factory=BatchCreationReport)

    @property
    def succeeded(self) -> bool:
        """Whether the batch-creation phase completed without rollback."""
        return self.batch.error is None


class RepublishReport(BaseModel):
    """Jobs re-sent for organizations of a QUEUED batch that have not paid."""

    batch_id: UUID
    jobs_published: int = 0
    already_settled: int = 0


class ReclaimReport(BaseModel):
    """Result of one stale-claim sweep."""

    rolled_back: dict[UUID, int] = Field(default_factory=dict)
    confirmed: list[UUID] = Field(default_factory=list)
    republished: dict[UUID, int] = Field(default_factory=dict)
    failed: dict[UUID, str] = Field(default_factory=dict)

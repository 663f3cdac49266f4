"""Internal billing command surface.

Each command is one variant of a union discriminated on ``method``. The
handler dispatches on the variant's type, so an unknown ``method`` fails
validation instead of missing a lookup at runtime.
"""

from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field


class ClaimPendingBatchCommand(BaseModel):
    """Claim up to ``max_size`` PENDING events under a fresh batch."""

    method: Literal["claim_pending_batch"] = "claim_pending_batch"
    max_size: Optional[int] = Field(default=None, gt=0)


class AggregateBatchCommand(BaseModel):
    """Sum cost per organization for a claimed batch."""

    method: Literal["aggregate"] = "aggregate"
    batch_id: UUID


class ConfirmEnqueuedCommand(BaseModel):
    """Move a claimed batch from QUEUING to QUEUED."""

    method: Literal["confirm_enqueued"] = "confirm_enqueued"
    batch_id: UUID


class RollbackClaimCommand(BaseModel):
    """Return every event of a batch to PENDING."""

    method: Literal["rollback_claim"] = "rollback_claim"
    batch_id: UUID


class GetQueuedBatchesCommand(BaseModel):
    """List batches waiting for settlement."""

    method: Literal["get_queued_batches"] = "get_queued_batches"


class GetOrganizationsCountCommand(BaseModel):
    """Count organizations implicated in a batch."""

    method: Literal["get_organizations_count_for_batch"] = "get_organizations_count_for_batch"
    batch_id: UUID


class GetProofOfPaymentCommand(BaseModel):
    """Count settled organizations per batch."""

    method: Literal["get_proof_of_payment"] = "get_proof_of_payment"
    batch_ids: list[UUID]


class FinalizeBatchCommand(BaseModel):
    """Mark a fully settled batch PROCESSED."""

    method: Literal["finalize_batch"] = "finalize_batch"
    batch_id: UUID


class DebitCommand(BaseModel):
    """Debit one billing job."""

    method: Literal["debit"] = "debit"
    organization_id: str = Field(..., min_length=1, max_length=255)
    job_id: UUID
    batch_id: UUID
    total_cost_in_units: int = Field(..., ge=0)


class RunOrchestrationCommand(BaseModel):
    """Run one full orchestrator pass."""

    method: Literal["run_orchestration"] = "run_orchestration"


class ReclaimStaleClaimsCommand(BaseModel):
    """Roll back QUEUING claims older than the configured threshold."""

    method: Literal["reclaim_stale_claims"] = "reclaim_stale_claims"
    older_than_minutes: Optional[int] = Field(default=None, gt=0)


class RepublishUnsettledCommand(BaseModel):
    """Re-send the jobs of a QUEUED batch whose organizations have not paid."""

    method: Literal["republish_unsettled"] = "republish_unsettled"
    batch_id: UUID


BillingCommand = Annotated[
    Union[
        ClaimPendingBatchCommand,
        AggregateBatchCommand,
        ConfirmEnqueuedCommand,
        RollbackClaimCommand,
        GetQueuedBatchesCommand,
        GetOrganizationsCountCommand,
        GetProofOfPaymentCommand,
        FinalizeBatchCommand,
        DebitCommand,
        RunOrchestrationCommand,
        ReclaimStaleClaimsCommand,
        RepublishUnsettledCommand,
    ],
    Field(discriminator="method"),
]


class BillingCommandResponse(BaseModel):
    """Result envelope echoing the command's ``method``."""

    method: str
    result: Any = None

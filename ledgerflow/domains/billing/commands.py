"""Internal billing command handler.

Dispatches each variant of the ``BillingCommand`` union to the component
that owns the operation. Dispatch is by variant type; a variant without a
branch raises instead of being silently ignored.
"""

from datetime import timedelta
from typing import Any

from ledgerflow.domains.billing.exceptions import UnsupportedBillingCommandError
from ledgerflow.domains.billing.protocols import BillingOrchestratorProtocol
from ledgerflow.domains.ledger.protocols import LedgerProtocol
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol
from ledgerflow.schemas.billing_commands import (
    AggregateBatchCommand,
    BillingCommand,
    BillingCommandResponse,
    ClaimPendingBatchCommand,
    ConfirmEnqueuedCommand,
    DebitCommand,
    FinalizeBatchCommand,
    GetOrganizationsCountCommand,
    GetProofOfPaymentCommand,
    GetQueuedBatchesCommand,
    ReclaimStaleClaimsCommand,
    RepublishUnsettledCommand,
    RollbackClaimCommand,
    RunOrchestrationCommand,
)


class BillingCommandHandler:
    """Executes internal billing commands."""

    def __init__(
        self,
        store: UsageEventStoreProtocol,
        ledger: LedgerProtocol,
        orchestrator: BillingOrchestratorProtocol,
    ) -> None:
        """Initialize with the components commands are routed to."""
        self._store = store
        self._ledger = ledger
        self._orchestrator = orchestrator

    async def handle(self, command: BillingCommand) -> BillingCommandResponse:
        """Run one command and wrap its result."""
        result = await self._dispatch(command)
        return BillingCommandResponse(method=command.method, result=result)

    async def _dispatch(self, command: BillingCommand) -> Any:
        if isinstance(command, ClaimPendingBatchCommand):
            return await self._store.claim_pending_batch(command.max_size)
        if isinstance(command, AggregateBatchCommand):
            return await self._store.aggregate(command.batch_id)
        if isinstance(command, ConfirmEnqueuedCommand):
            return await self._store.confirm_enqueued(command.batch_id)
        if isinstance(command, RollbackClaimCommand):
            return await self._store.rollback_claim(command.batch_id)
        if isinstance(command, GetQueuedBatchesCommand):
            return await self._store.get_queued_batches()
        if isinstance(command, GetOrganizationsCountCommand):
            return await self._store.get_organizations_count_for_batch(command.batch_id)
        if isinstance(command, GetProofOfPaymentCommand):
            proof = await self._ledger.get_proof_of_payment(command.batch_ids)
            return {str(batch_id): count for batch_id, count in proof.items()}
        if isinstance(command, FinalizeBatchCommand):
            return await self._store.finalize_batch(command.batch_id)
        if isinstance(command, DebitCommand):
            return await self._ledger.debit(
                organization_id=command.organization_id,
                job_id=command.job_id,
                batch_id=command.batch_id,
                total_cost_in_units=command.total_cost_in_units,
            )
        if isinstance(command, RunOrchestrationCommand):
            return await self._orchestrator.run()
        if isinstance(command, ReclaimStaleClaimsCommand):
            older_than = (
                timedelta(minutes=command.older_than_minutes)
                if command.older_than_minutes is not None
                else None
            )
            return await self._orchestrator.reclaim_stale_claims(older_than)
        if isinstance(command, RepublishUnsettledCommand):
            return await self._orchestrator.republish_unsettled(command.batch_id)
        raise UnsupportedBillingCommandError(command)

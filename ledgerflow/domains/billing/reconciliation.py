"""Batch reconciliation: prove a QUEUED batch settled, then finalize it.

A batch is settled once every organization implicated in it has a debit
record for it. Partially settled batches stay QUEUED and are checked again
on the next pass; debits are idempotent and independent per organization,
so waiting is always safe.
"""

import logging
from typing import Optional
from uuid import UUID

from ledgerflow.core.protocols.metrics import BillingMetrics
from ledgerflow.domains.ledger.protocols import LedgerProtocol
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol
from ledgerflow.schemas.billing import BatchSettlement, ReconciliationReport

logger = logging.getLogger(__name__)


class BatchReconciler:
    """Finalizes QUEUED batches whose proof of payment is complete."""

    def __init__(
        self,
        store: UsageEventStoreProtocol,
        ledger: LedgerProtocol,
        metrics: Optional[BillingMetrics] = None,
    ) -> None:
        """Initialize with the event store, the ledger and optional metrics."""
        self._store = store
        self._ledger = ledger
        self._metrics = metrics

    async def check_batch(self, batch_id: UUID) -> BatchSettlement:
        """Compare implicated organizations with settled ones for one batch."""
        expected = await self._store.get_organizations_count_for_batch(batch_id)
        proof = await self._ledger.get_proof_of_payment([batch_id])
        return BatchSettlement(batch_id=batch_id, expected=expected, actual=proof[batch_id])

    async def reconcile(self) -> ReconciliationReport:
        """Check every QUEUED batch and finalize the settled ones.

        A failure on one batch is logged and does not stop the others.
        Failing to list batches or to read the proof propagates.
        """
        report = ReconciliationReport()
        queued = await self._store.get_queued_batches()
        if not queued:
            return report

        proof = await self._ledger.get_proof_of_payment(queued)
        report.checked = len(queued)

        for batch_id in queued:
            try:
                expected = await self._store.get_organizations_count_for_batch(batch_id)
                settlement = BatchSettlement(
                    batch_id=batch_id, expected=expected, actual=proof.get(batch_id, 0)
                )
                if not settlement.is_settled:
                    report.unsettled.append(settlement)
                    logger.info(
                        "Batch %s not settled yet: %d/%d organizations paid",
                        batch_id,
                        settlement.actual,
                        settlement.expected,
                    )
                    continue
                report.events_processed += await self._store.finalize_batch(batch_id)
                report.finalized.append(batch_id)
            except Exception:
                logger.exception("Failed to reconcile batch %s", batch_id)
                report.failed.append(batch_id)

        if report.finalized and self._metrics is not None:
            self._metrics.inc_batches_finalized(len(report.finalized))
        logger.info(
            "Reconciled %d queued batches: %d finalized, %d unsettled, %d failed",
            report.checked,
            len(report.finalized),
            len(report.unsettled),
            len(report.failed),
        )
        return report

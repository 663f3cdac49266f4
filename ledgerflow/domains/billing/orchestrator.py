"""Billing orchestrator.

One run has two phases:

1. Reconciliation finalizes QUEUED batches that are fully paid. Its errors
   are logged and never block phase 2.
2. Batch creation claims PENDING events, aggregates cost per organization,
   publishes one job per organization in chunks and confirms the batch.

The claim is the only step with a compensation, and it only holds until the
first chunk reaches the queue. A job on the queue may be debited at any
moment; rolling its events back to PENDING would bill them again under a
new batch. So a publish that fails after some chunks went out, or a failed
confirm, leaves the batch QUEUING for the stale-claim sweep. The sweep
publishes the jobs of every unpaid organization and confirms the batch if
any of its jobs was already debited, and rolls it back otherwise.

Runs may overlap. The claim predicate keeps them from sharing events.
"""

import time
from datetime import timedelta
from typing import Optional, Sequence
from uuid import UUID

from ledgerflow.core.logging import ContextualLogger
from ledgerflow.core.logging import logger as default_logger
from ledgerflow.core.protocols.job_queue import BillingJobQueue
from ledgerflow.core.protocols.metrics import BillingMetrics
from ledgerflow.core.saga import SagaCoordinator
from ledgerflow.domains.billing.exceptions import (
    BillingJobPublishError,
    BillingStateError,
    wrap_queue_errors,
)
from ledgerflow.domains.billing.protocols import BatchReconcilerProtocol
from ledgerflow.domains.billing.types import build_jobs, chunked
from ledgerflow.domains.ledger.protocols import LedgerProtocol
from ledgerflow.domains.usage_events.exceptions import BatchAggregationError
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol
from ledgerflow.schemas.billing import (
    BatchCreationReport,
    BillingJob,
    OrchestrationReport,
    ReclaimReport,
    RepublishReport,
)


class BillingOrchestrator:
    """Drives usage events from PENDING to published billing jobs."""

    def __init__(
        self,
        store: UsageEventStoreProtocol,
        ledger: LedgerProtocol,
        queue: BillingJobQueue,
        reconciler: BatchReconcilerProtocol,
        metrics: BillingMetrics,
        claim_batch_size: int = 1000,
        publish_chunk_size: int = 100,
        stale_claim_after: timedelta = timedelta(minutes=15),
        logger: Optional[ContextualLogger] = None,
    ) -> None:
        """Initialize the orchestrator with its collaborators and tunables."""
        if claim_batch_size <= 0 or publish_chunk_size <= 0:
            raise ValueError("claim_batch_size and publish_chunk_size must be positive")
        self._store = store
        self._ledger = ledger
        self._queue = queue
        self._reconciler = reconciler
        self._metrics = metrics
        self._claim_batch_size = claim_batch_size
        self._publish_chunk_size = publish_chunk_size
        self._stale_claim_after = stale_claim_after
        self._logger = (logger or default_logger).with_prefix("[BillingOrchestrator] ")

    async def run(self) -> OrchestrationReport:
        """Reconcile queued batches, then create and publish one new batch."""
        started = time.monotonic()
        report = OrchestrationReport()

        try:
            report.reconciliation = await self._reconciler.reconcile()
        except Exception as e:
            self._logger.error(f"Reconciliation failed: {e}", exc_info=True)
            report.reconciliation_error = str(e)

        report.batch = await self.create_batch()

        self._metrics.observe_orchestration_duration(time.monotonic() - started)
        return report

    async def create_batch(self) -> BatchCreationReport:
        """Claim, aggregate, publish and confirm one batch.

        Never raises for a failure after the claim; the report carries the
        error and whether the claim was rolled back.
        """
        claim = await self._store.claim_pending_batch(self._claim_batch_size)
        if claim.is_empty:
            self._logger.debug("Nothing to bill")
            return BatchCreationReport()

        self._metrics.inc_events_claimed(claim.claimed)
        batch_logger = self._logger.with_context(batch_id=str(claim.batch_id))
        report = BatchCreationReport(batch_id=claim.batch_id, claimed=claim.claimed)

        saga = SagaCoordinator(name="create_batch", logger=batch_logger)
        saga.dispatch(lambda: self._store.rollback_claim(claim.batch_id))
        sent: list[BillingJob] = []

        try:
            costs = await self._store.aggregate(claim.batch_id)
            if not costs:
                raise BatchAggregationError(claim.batch_id, claim.claimed)
            report.organizations = len(costs)

            jobs = build_jobs(claim.batch_id, costs)
            await self._publish(jobs, sent=sent)
        except Exception as e:
            report.error = str(e)
            report.jobs_published = len(sent)
            if sent:
                saga.success()
                batch_logger.error(
                    f"Publish failed after {len(sent)} of {report.organizations} jobs; "
                    f"claim kept for the stale-claim sweep: {e}",
                    exc_info=True,
                )
                return report
            batch_logger.error(f"Batch creation failed, rolling back claim: {e}", exc_info=True)
            results = await saga.cancel()
            self._metrics.inc_batch_rollbacks()
            report.rolled_back = all(result.succeeded for result in results)
            return report

        saga.success()
        report.jobs_published = len(sent)

        try:
            report.confirmed = await self._store.confirm_enqueued(claim.batch_id)
        except Exception as e:
            batch_logger.error(
                f"Jobs published but confirm failed; batch left for the stale-claim sweep: {e}",
                exc_info=True,
            )
            report.error = str(e)
            return report

        batch_logger.info(
            f"Batch created: {claim.claimed} events, {report.organizations} organizations, "
            f"{report.jobs_published} jobs published"
        )
        return report

    async def reclaim_stale_claims(self, older_than: Optional[timedelta] = None) -> ReclaimReport:
        """Resolve batches stuck in QUEUING longer than the stale threshold.

        A stale batch with at least one debit was at least partly published.
        Its unpaid organizations get their jobs (again), then the batch is
        confirmed and left to reconciliation. If that publish fails the batch
        stays QUEUING and the next sweep tries again. A stale batch with no
        debit is rolled back; any of its jobs still in flight are discarded
        by the settler because the batch no longer includes their
        organization.
        """
        report = ReclaimReport()
        stale = await self._store.get_stale_claims(older_than or self._stale_claim_after)
        if not stale:
            return report

        proof = await self._ledger.get_proof_of_payment(stale)
        for batch_id in stale:
            batch_logger = self._logger.with_context(batch_id=str(batch_id))
            if proof.get(batch_id, 0) > 0:
                try:
                    published, _ = await self._publish_unsettled(batch_id)
                except BillingJobPublishError as e:
                    batch_logger.error(f"Stale claim republish failed, kept QUEUING: {e}")
                    report.failed[batch_id] = str(e)
                    continue
                await self._store.confirm_enqueued(batch_id)
                report.confirmed.append(batch_id)
                report.republished[batch_id] = published
                batch_logger.warning(
                    f"Stale claim already has debits; {published} unpaid jobs republished "
                    "and batch confirmed as enqueued"
                )
            else:
                report.rolled_back[batch_id] = await self._store.rollback_claim(batch_id)
                batch_logger.warning("Stale claim rolled back to PENDING")

        self._metrics.inc_claims_reclaimed(len(stale))
        return report

    async def republish_unsettled(self, batch_id: UUID) -> RepublishReport:
        """Re-send the jobs of a QUEUED batch for organizations that have not paid.

        Job ids are derived from the batch and organization, so a job that
        is settled in the meantime is a no-op when it arrives again.
        """
        if batch_id not in await self._store.get_queued_batches():
            raise BillingStateError(f"Batch {batch_id} is not awaiting settlement")

        published, already_settled = await self._publish_unsettled(batch_id)
        self._logger.with_context(batch_id=str(batch_id)).info(
            f"Republished {published} unsettled jobs ({already_settled} already settled)"
        )
        return RepublishReport(
            batch_id=batch_id, jobs_published=published, already_settled=already_settled
        )

    async def _publish_unsettled(self, batch_id: UUID) -> tuple[int, int]:
        costs = await self._store.get_organization_costs_for_batch(batch_id)
        settled = await self._ledger.get_settled_organizations(batch_id)
        unsettled = [cost for cost in costs if cost.organization_id not in settled]
        published = await self._publish(build_jobs(batch_id, unsettled))
        return published, len(settled)

    @wrap_queue_errors
    async def _publish(
        self, jobs: Sequence[BillingJob], sent: Optional[list[BillingJob]] = None
    ) -> int:
        """Send jobs chunk by chunk; ``sent`` collects what reached the queue."""
        published = 0
        for chunk in chunked(jobs, self._publish_chunk_size):
            await self._queue.send_batch(chunk)
            published += len(chunk)
            if sent is not None:
                sent.extend(chunk)
            self._metrics.inc_jobs_published(len(chunk))
        return published

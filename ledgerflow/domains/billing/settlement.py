"""Settle delivered billing jobs against the ledger.

Decision table:

- debited or duplicate -> ACK
- insufficient balance -> ACK; retrying cannot succeed without new funds,
  and the batch simply stays QUEUED
- batch no longer includes the organization (claim rolled back) -> ACK
  without debiting; the events will be billed under a new batch
- anything else -> RETRY
"""

import asyncio
from typing import Optional, Sequence

from ledgerflow.core.logging import ContextualLogger
from ledgerflow.core.logging import logger as default_logger
from ledgerflow.core.protocols.metrics import BillingMetrics
from ledgerflow.domains.billing.types import SettlementDecision, SettlementOutcome
from ledgerflow.domains.ledger.exceptions import InsufficientBalanceError
from ledgerflow.domains.ledger.protocols import LedgerProtocol
from ledgerflow.domains.usage_events.protocols import UsageEventStoreProtocol
from ledgerflow.schemas.billing import BillingJob
from ledgerflow.schemas.ledger import DebitOutcome


class BillingJobSettler:
    """Turns one billing job into a ledger debit and an ack/retry decision."""

    def __init__(
        self,
        ledger: LedgerProtocol,
        store: UsageEventStoreProtocol,
        metrics: BillingMetrics,
        logger: Optional[ContextualLogger] = None,
    ) -> None:
        """Initialize with the ledger, the event store and metrics."""
        self._ledger = ledger
        self._store = store
        self._metrics = metrics
        self._logger = logger or default_logger

    async def settle(self, job: BillingJob) -> SettlementDecision:
        """Debit one job and decide whether its delivery is done."""
        job_logger = self._logger.with_context(
            job_id=str(job.job_id),
            batch_id=str(job.batch_id),
            organization_id=job.organization_id,
        )
        try:
            if not await self._store.batch_includes_organization(
                job.batch_id, job.organization_id
            ):
                job_logger.warning("Batch no longer includes this organization; dropping job")
                self._metrics.inc_debits(SettlementOutcome.STALE.value)
                return SettlementDecision.ACK

            result = await self._ledger.debit(
                organization_id=job.organization_id,
                job_id=job.job_id,
                batch_id=job.batch_id,
                total_cost_in_units=job.total_cost_in_units,
            )
        except InsufficientBalanceError as e:
            job_logger.warning(
                f"Insufficient balance: required {e.required}, available {e.available}"
            )
            self._metrics.inc_debits(SettlementOutcome.INSUFFICIENT_BALANCE.value)
            return SettlementDecision.ACK
        except Exception as e:
            job_logger.error(f"Debit failed, will retry: {e}", exc_info=True)
            self._metrics.inc_debits(SettlementOutcome.ERROR.value)
            return SettlementDecision.RETRY

        if result.outcome == DebitOutcome.DUPLICATE:
            self._metrics.inc_debits(SettlementOutcome.DUPLICATE.value)
        else:
            self._metrics.inc_debits(SettlementOutcome.DEBITED.value)
        return SettlementDecision.ACK

    async def settle_many(self, jobs: Sequence[BillingJob]) -> list[SettlementDecision]:
        """Settle jobs concurrently; decisions are returned in input order."""
        return list(await asyncio.gather(*(self.settle(job) for job in jobs)))

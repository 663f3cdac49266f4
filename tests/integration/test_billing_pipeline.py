"""Billing pipeline against real PostgreSQL.

Covers what the in-memory fakes cannot: SKIP LOCKED claiming, the
row-locked FIFO debit under concurrency and the job_id unique constraint.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from ledgerflow.adapters.job_queue.fake import FakeBillingJobQueue
from ledgerflow.adapters.metrics import FakeBillingMetrics
from ledgerflow.domains.billing.orchestrator import BillingOrchestrator
from ledgerflow.domains.billing.reconciliation import BatchReconciler
from ledgerflow.domains.billing.settlement import BillingJobSettler
from ledgerflow.domains.billing.types import SettlementDecision
from ledgerflow.domains.ledger.exceptions import InsufficientBalanceError
from ledgerflow.schemas.ledger import DebitOutcome
from ledgerflow.schemas.usage_event import UsageEventCreate

from .conftest import requires_postgres

pytestmark = [pytest.mark.integration, requires_postgres]


def _events(org: str, *costs: int) -> list[UsageEventCreate]:
    return [
        UsageEventCreate(idempotency_key=str(uuid4()), organization_id=org, cost_units=cost)
        for cost in costs
    ]


class TestClaiming:
    @pytest.mark.asyncio
    async def test_ingest_is_idempotent(self, pg_store):
        events = _events("org-a", 10, 20)

        assert await pg_store.ingest(events) == 2
        assert await pg_store.ingest(events) == 0

    @pytest.mark.asyncio
    async def test_concurrent_claims_never_overlap(self, pg_store):
        await pg_store.ingest(_events("org-a", *([1] * 30)))

        claims = await asyncio.gather(*(pg_store.claim_pending_batch(10) for _ in range(4)))

        assert sum(c.claimed for c in claims) == 30
        assert all(c.claimed <= 10 for c in claims)
        assert len({c.batch_id for c in claims}) == 4

    @pytest.mark.asyncio
    async def test_aggregate_and_rollback(self, pg_store):
        await pg_store.ingest(_events("org-a", 100, 50) + _events("org-b", 7))
        claim = await pg_store.claim_pending_batch()

        aggregated = await pg_store.aggregate(claim.batch_id)
        costs = {c.organization_id: c.total_cost_in_units for c in aggregated}
        released = await pg_store.rollback_claim(claim.batch_id)

        assert costs == {"org-a": 150, "org-b": 7}
        assert released == 3
        assert (await pg_store.claim_pending_batch()).claimed == 3

    @pytest.mark.asyncio
    async def test_stale_claims_are_found_by_age(self, pg_store):
        await pg_store.ingest(_events("org-a", 1))
        claim = await pg_store.claim_pending_batch()

        assert await pg_store.get_stale_claims(timedelta(minutes=5)) == []
        assert await pg_store.get_stale_claims(timedelta(seconds=-1)) == [claim.batch_id]


class TestDebits:
    @pytest.mark.asyncio
    async def test_same_job_debits_once_under_concurrency(self, pg_ledger):
        await pg_ledger.credit("org-a", 1000)
        job_id, batch_id = uuid4(), uuid4()

        results = await asyncio.gather(
            *(pg_ledger.debit("org-a", job_id, batch_id, 300) for _ in range(3))
        )

        assert sorted(r.outcome for r in results) == [
            DebitOutcome.DEBITED,
            DebitOutcome.DUPLICATE,
            DebitOutcome.DUPLICATE,
        ]
        assert (await pg_ledger.get_balance("org-a")).balance_in_usd_cents == 700

    @pytest.mark.asyncio
    async def test_concurrent_jobs_never_overdraw(self, pg_ledger):
        await pg_ledger.credit("org-a", 1000)
        batch_id = uuid4()

        results = await asyncio.gather(
            *(pg_ledger.debit("org-a", uuid4(), batch_id, 400) for _ in range(3)),
            return_exceptions=True,
        )

        assert sum(isinstance(r, InsufficientBalanceError) for r in results) == 1
        assert (await pg_ledger.get_balance("org-a")).balance_in_usd_cents == 200

    @pytest.mark.asyncio
    async def test_fifo_across_layers(self, pg_ledger):
        await pg_ledger.credit("org-a", 100)
        await pg_ledger.credit("org-a", 500)

        await pg_ledger.debit("org-a", uuid4(), uuid4(), 250)

        layers = await pg_ledger.list_credit_layers("org-a")
        assert [layer.remaining_in_usd_cents for layer in layers] == [0, 350]


class TestPipeline:
    @pytest.mark.asyncio
    async def test_orchestrate_settle_reconcile(self, pg_store, pg_ledger):
        queue, metrics = FakeBillingJobQueue(), FakeBillingMetrics()
        reconciler = BatchReconciler(store=pg_store, ledger=pg_ledger, metrics=metrics)
        orchestrator = BillingOrchestrator(
            store=pg_store,
            ledger=pg_ledger,
            queue=queue,
            reconciler=reconciler,
            metrics=metrics,
        )
        settler = BillingJobSettler(ledger=pg_ledger, store=pg_store, metrics=metrics)
        await pg_ledger.credit("org-a", 1000)
        await pg_ledger.credit("org-b", 1000)
        await pg_store.ingest(_events("org-a", 100, 200) + _events("org-b", 50))

        report = await orchestrator.run()
        decisions = await settler.settle_many(queue.sent)
        reconciliation = await reconciler.reconcile()

        assert report.batch.jobs_published == 2
        assert decisions == [SettlementDecision.ACK, SettlementDecision.ACK]
        assert reconciliation.finalized == [report.batch.batch_id]
        assert (await pg_ledger.get_balance("org-a")).balance_in_usd_cents == 700
        assert (await pg_ledger.get_balance("org-b")).balance_in_usd_cents == 950

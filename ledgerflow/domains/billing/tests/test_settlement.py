"""Tests for BillingJobSettler's ack/retry decisions."""

from uuid import uuid4

import pytest

from ledgerflow.domains.billing.tests.conftest import ORG_A, ORG_B
from ledgerflow.domains.billing.types import SettlementDecision, derive_job_id
from ledgerflow.schemas.billing import BillingJob
from ledgerflow.schemas.usage_event import UsageEventStatus


def _job(batch_id, organization_id=ORG_A, cost=100) -> BillingJob:
    return BillingJob(
        job_id=derive_job_id(batch_id, organization_id),
        batch_id=batch_id,
        organization_id=organization_id,
        total_cost_in_units=cost,
    )


@pytest.fixture
def batch_id(event_repo):
    batch_id = uuid4()
    event_repo.seed(ORG_A, 100, status=UsageEventStatus.QUEUED, batch_id=batch_id)
    event_repo.seed(ORG_B, 50, status=UsageEventStatus.QUEUED, batch_id=batch_id)
    return batch_id


@pytest.mark.asyncio
class TestSettle:
    async def test_debited_is_acked(self, settler, batch_id, ledger_repo, metrics):
        ledger_repo.seed_layer(ORG_A, 1000)

        decision = await settler.settle(_job(batch_id))

        assert decision == SettlementDecision.ACK
        assert ledger_repo.balance_of(ORG_A) == 900
        assert metrics.debits["debited"] == 1

    async def test_redelivery_is_acked_without_second_debit(
        self, settler, batch_id, ledger_repo, metrics
    ):
        ledger_repo.seed_layer(ORG_A, 1000)
        job = _job(batch_id)

        await settler.settle(job)
        decision = await settler.settle(job)

        assert decision == SettlementDecision.ACK
        assert ledger_repo.balance_of(ORG_A) == 900
        assert len(ledger_repo.debits(ORG_A)) == 1
        assert metrics.debits["duplicate"] == 1

    async def test_insufficient_balance_is_acked(self, settler, batch_id, ledger_repo, metrics):
        ledger_repo.seed_layer(ORG_A, 40)

        decision = await settler.settle(_job(batch_id))

        assert decision == SettlementDecision.ACK
        assert ledger_repo.balance_of(ORG_A) == 40
        assert ledger_repo.debits(ORG_A) == []
        assert metrics.debits["insufficient_balance"] == 1

    async def test_unknown_organization_is_insufficient(self, settler, batch_id, metrics):
        decision = await settler.settle(_job(batch_id, organization_id=ORG_B, cost=50))

        assert decision == SettlementDecision.ACK
        assert metrics.debits["insufficient_balance"] == 1

    async def test_rolled_back_batch_is_dropped_without_debit(
        self, settler, event_repo, ledger_repo, metrics
    ):
        ledger_repo.seed_layer(ORG_A, 1000)
        # batch no longer holds any event for this organization
        decision = await settler.settle(_job(uuid4()))

        assert decision == SettlementDecision.ACK
        assert ledger_repo.balance_of(ORG_A) == 1000
        assert ledger_repo.debits(ORG_A) == []
        assert metrics.debits["stale"] == 1

    async def test_unexpected_error_is_retried(self, settler, batch_id, event_repo, metrics):
        event_repo.fail_on("has_organization_in_batch", RuntimeError("connection reset"))

        decision = await settler.settle(_job(batch_id))

        assert decision == SettlementDecision.RETRY
        assert metrics.debits["error"] == 1


@pytest.mark.asyncio
async def test_settle_many_keeps_input_order(settler, batch_id, ledger_repo):
    ledger_repo.seed_layer(ORG_A, 1000)

    decisions = await settler.settle_many(
        [_job(batch_id), _job(uuid4(), organization_id=ORG_B)]
    )

    assert decisions == [SettlementDecision.ACK, SettlementDecision.ACK]
    assert ledger_repo.balance_of(ORG_A) == 900

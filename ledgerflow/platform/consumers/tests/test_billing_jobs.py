"""Tests for the billing job consumer loop."""

import asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from ledgerflow.adapters.job_queue.fake import FakeBillingJobQueue
from ledgerflow.domains.billing.types import SettlementDecision
from ledgerflow.platform.consumers.billing_jobs import BillingJobsConsumer
from ledgerflow.schemas.billing import BillingJob


def _job(org: str) -> BillingJob:
    return BillingJob(job_id=uuid4(), batch_id=uuid4(), organization_id=org, total_cost_in_units=5)


def _consumer(queue, settler) -> BillingJobsConsumer:
    return BillingJobsConsumer(queue, settler, consumer_name="test", batch_size=10, block_ms=0)


@pytest.mark.asyncio
async def test_acks_and_retries_by_decision():
    queue = FakeBillingJobQueue()
    await queue.send_batch([_job("org-a"), _job("org-b")])
    settler = AsyncMock()
    settler.settle_many.return_value = [SettlementDecision.ACK, SettlementDecision.RETRY]

    handled = await _consumer(queue, settler).run_once()

    assert handled == 2
    assert [m.job.organization_id for m in queue.acked] == ["org-a"]
    assert [m.job.organization_id for m, _ in queue.retried] == ["org-b"]
    assert queue.pending()[0].attempt == 2


@pytest.mark.asyncio
async def test_empty_queue_does_not_call_settler():
    settler = AsyncMock()

    assert await _consumer(FakeBillingJobQueue(), settler).run_once() == 0
    settler.settle_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_dead_lettered_job_is_not_requeued():
    queue = FakeBillingJobQueue(max_attempts=1)
    await queue.send_batch([_job("org-a")])
    settler = AsyncMock()
    settler.settle_many.return_value = [SettlementDecision.RETRY]

    await _consumer(queue, settler).run_once()

    assert len(queue.dead_letters) == 1
    assert queue.pending() == []


@pytest.mark.asyncio
async def test_settles_for_real_against_the_ledger(test_container, fake_ledger_repo):
    fake_ledger_repo.seed_layer("org-a", 100)
    queue = test_container.job_queue
    await queue.send_batch([_job("org-a")])

    # the batch is unknown to the store, so the stale guard acks without debiting
    await _consumer(queue, test_container.settler).run_once()

    assert len(queue.acked) == 1
    assert fake_ledger_repo.balance_of("org-a") == 100


@pytest.mark.asyncio
async def test_run_survives_errors_until_stopped():
    stop = asyncio.Event()
    queue = AsyncMock()
    calls = 0

    async def _receive(*args, **kwargs):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("redis blip")
        stop.set()
        return []

    queue.receive.side_effect = _receive
    consumer = BillingJobsConsumer(
        queue, AsyncMock(), consumer_name="test", block_ms=0, error_backoff_seconds=0.01
    )

    await asyncio.wait_for(consumer.run(stop), timeout=2)

    assert calls == 2

"""Tests for FakeBillingJobQueue delivery semantics."""

from uuid import uuid4

import pytest

from ledgerflow.adapters.job_queue.fake import FakeBillingJobQueue
from ledgerflow.core.exceptions import ExternalServiceError
from ledgerflow.schemas.billing import BillingJob


def _job(org: str = "org-a", cost: int = 10) -> BillingJob:
    return BillingJob(job_id=uuid4(), batch_id=uuid4(), organization_id=org, total_cost_in_units=cost)


@pytest.mark.asyncio
async def test_fifo_delivery_and_ack():
    queue = FakeBillingJobQueue()
    jobs = [_job("org-a"), _job("org-b"), _job("org-c")]
    await queue.send_batch(jobs)

    first = await queue.receive("c1", count=2, block_ms=0)
    rest = await queue.receive("c1", count=10, block_ms=0)

    assert [m.job for m in first] == jobs[:2]
    assert [m.job for m in rest] == jobs[2:]
    await queue.ack(first[0])
    assert queue.acked == [first[0]]


@pytest.mark.asyncio
async def test_retry_until_dead_letter():
    queue = FakeBillingJobQueue(max_attempts=2)
    await queue.send_batch([_job()])

    [message] = await queue.receive("c1", count=1, block_ms=0)
    assert await queue.retry(message, "boom") is True

    [again] = await queue.receive("c1", count=1, block_ms=0)
    assert again.attempt == 2
    assert await queue.retry(again, "boom") is False
    assert queue.dead_letters == [(again, "boom")]
    assert queue.pending() == []


@pytest.mark.asyncio
async def test_fail_next_send_after_calls():
    queue = FakeBillingJobQueue()
    queue.fail_next_send(after_calls=1)

    await queue.send_batch([_job()])
    with pytest.raises(ExternalServiceError):
        await queue.send_batch([_job()])
    await queue.send_batch([_job()])

    assert len(queue.sent) == 2
    assert queue.send_calls == 3

"""Job queue protocol for handing billing jobs to settlement consumers.

Delivery is at-least-once: a job may be received more than once, so
consumers rely on the ledger's job-id idempotency rather than on the queue.

Implementations:
- RedisStreamBillingJobQueue: adapters/job_queue/redis.py
- FakeBillingJobQueue: adapters/job_queue/fake.py (tests)
"""

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from ledgerflow.schemas.billing import BillingJob


@dataclass(frozen=True)
class QueuedJob:
    """A received job plus the delivery bookkeeping needed to ack or retry it."""

    message_id: str
    job: BillingJob
    attempt: int = 1


@runtime_checkable
class BillingJobQueue(Protocol):
    """Protocol for publishing and consuming billing jobs."""

    async def send_batch(self, jobs: Sequence[BillingJob]) -> None:
        """Publish jobs. Raises on failure; a partial send is a failure.

        Args:
            jobs: Jobs to publish, at most one chunk's worth
        """
        ...

    async def receive(self, consumer: str, count: int, block_ms: int) -> list[QueuedJob]:
        """Receive up to ``count`` jobs, waiting at most ``block_ms`` for the first one."""
        ...

    async def ack(self, message: QueuedJob) -> None:
        """Mark a job as done so it is never delivered again."""
        ...

    async def retry(self, message: QueuedJob, reason: str) -> bool:
        """Re-deliver a job later.

        Returns:
            True if the job was re-queued, False if it exhausted its attempts
            and was moved to the dead-letter stream.
        """
        ...

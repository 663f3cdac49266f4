"""Fake billing job queue for testing.

Records sent jobs and delivers them in FIFO order. ``fail_next_send``
makes the next ``send_batch`` raise, for exercising publish failures.
"""

from collections import deque
from typing import Optional, Sequence

from ledgerflow.core.exceptions import ExternalServiceError
from ledgerflow.core.protocols.job_queue import BillingJobQueue, QueuedJob
from ledgerflow.schemas.billing import BillingJob


class FakeBillingJobQueue(BillingJobQueue):
    """In-memory fake implementing the BillingJobQueue protocol."""

    def __init__(self, max_attempts: int = 5) -> None:
        self.max_attempts = max_attempts
        self.sent: list[BillingJob] = []
        self.send_calls: int = 0
        self.acked: list[QueuedJob] = []
        self.retried: list[tuple[QueuedJob, str]] = []
        self.dead_letters: list[tuple[QueuedJob, str]] = []
        self._pending: deque[QueuedJob] = deque()
        self._fail_sends_after: Optional[int] = None
        self._send_error: Optional[Exception] = None
        self._next_id = 0

    # -- test helpers --

    def fail_next_send(self, error: Optional[Exception] = None, after_calls: int = 0) -> None:
        """Make a future ``send_batch`` raise.

        Args:
            error: Exception to raise; an ExternalServiceError by default
            after_calls: Number of sends that still succeed first
        """
        self._send_error = error or ExternalServiceError("fake-queue", "send failed")
        self._fail_sends_after = self.send_calls + after_calls

    def pending(self) -> list[QueuedJob]:
        """Jobs waiting to be received."""
        return list(self._pending)

    def clear(self) -> None:
        """Reset all recorded state."""
        self.sent.clear()
        self.acked.clear()
        self.retried.clear()
        self.dead_letters.clear()
        self._pending.clear()
        self.send_calls = 0
        self._fail_sends_after = None
        self._send_error = None

    def _enqueue(self, job: BillingJob, attempt: int) -> None:
        self._next_id += 1
        self._pending.append(QueuedJob(message_id=f"{self._next_id}-0", job=job, attempt=attempt))

    # -- protocol --

    async def send_batch(self, jobs: Sequence[BillingJob]) -> None:
        if self._fail_sends_after is not None and self.send_calls >= self._fail_sends_after:
            self.send_calls += 1
            error, self._send_error, self._fail_sends_after = self._send_error, None, None
            raise error
        self.send_calls += 1
        for job in jobs:
            self.sent.append(job)
            self._enqueue(job, attempt=1)

    async def receive(self, consumer: str, count: int, block_ms: int) -> list[QueuedJob]:
        received = []
        while self._pending and len(received) < count:
            received.append(self._pending.popleft())
        return received

    async def ack(self, message: QueuedJob) -> None:
        self.acked.append(message)

    async def retry(self, message: QueuedJob, reason: str) -> bool:
        self.retried.append((message, reason))
        if message.attempt >= self.max_attempts:
            self.dead_letters.append((message, reason))
            return False
        self._enqueue(message.job, attempt=message.attempt + 1)
        return True

"""Billing job consumer loop.

Pulls billing jobs from the queue, settles them against the ledger and
acks or retries each delivery. Several consumers may run side by side;
the ledger's job-id idempotency makes duplicate deliveries harmless.
"""

import asyncio
import socket
from typing import Optional

from ledgerflow.core.logging import ContextualLogger
from ledgerflow.core.logging import logger as default_logger
from ledgerflow.core.protocols import BillingJobQueue
from ledgerflow.domains.billing.protocols import BillingJobSettlerProtocol
from ledgerflow.domains.billing.types import SettlementDecision


class BillingJobsConsumer:
    """Receive, settle, ack/retry."""

    def __init__(
        self,
        queue: BillingJobQueue,
        settler: BillingJobSettlerProtocol,
        consumer_name: Optional[str] = None,
        batch_size: int = 50,
        block_ms: int = 5000,
        error_backoff_seconds: float = 1.0,
        logger: Optional[ContextualLogger] = None,
    ) -> None:
        """Initialize the consumer."""
        self._queue = queue
        self._settler = settler
        self._consumer_name = consumer_name or socket.gethostname()
        self._batch_size = batch_size
        self._block_ms = block_ms
        self._error_backoff_seconds = error_backoff_seconds
        self._logger = (logger or default_logger).with_context(consumer=self._consumer_name)

    async def run_once(self) -> int:
        """Handle one batch of deliveries. Returns the number received."""
        messages = await self._queue.receive(
            self._consumer_name, count=self._batch_size, block_ms=self._block_ms
        )
        if not messages:
            return 0

        decisions = await self._settler.settle_many([message.job for message in messages])
        for message, decision in zip(messages, decisions):
            if decision == SettlementDecision.ACK:
                await self._queue.ack(message)
            elif not await self._queue.retry(message, reason="settlement failed"):
                self._logger.with_context(job_id=str(message.job.job_id)).error(
                    f"Job dead-lettered after {message.attempt} attempts"
                )
        return len(messages)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Loop until ``stop_event`` is set.

        Queue errors are logged and retried after a short pause so a Redis
        blip does not kill the process.
        """
        self._logger.info("Billing job consumer started")
        while not stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                self._logger.error(f"Consumer iteration failed: {e}", exc_info=True)
                try:
                    await asyncio.wait_for(stop_event.wait(), self._error_backoff_seconds)
                except asyncio.TimeoutError:
                    pass
        self._logger.info("Billing job consumer stopped")

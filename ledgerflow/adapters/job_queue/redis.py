"""Redis Streams billing job queue.

Jobs are stream entries read through a consumer group, so each entry goes
to one consumer at a time. An entry stays pending until acked; entries left
pending by a consumer that died are claimed by another consumer once they
have been idle for ``reclaim_idle_ms``. A retried job is re-added with its
attempt counter incremented and, past ``max_attempts``, moved to the
dead-letter stream instead.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import redis.asyncio as redis
from pydantic import ValidationError

from ledgerflow.core.exceptions import ExternalServiceError
from ledgerflow.core.protocols.job_queue import BillingJobQueue, QueuedJob
from ledgerflow.schemas.billing import BillingJob

logger = logging.getLogger(__name__)

_SERVICE = "redis"


class RedisStreamBillingJobQueue(BillingJobQueue):
    """Redis Streams implementation of the BillingJobQueue protocol."""

    def __init__(
        self,
        client: redis.Redis,
        stream: str,
        group: str,
        dead_letter_stream: str,
        max_attempts: int = 5,
        reclaim_idle_ms: int = 60_000,
    ) -> None:
        """Initialize the queue.

        Args:
            client: Redis client created with ``decode_responses=True``
            stream: Stream holding live jobs
            group: Consumer group shared by all settlement consumers
            dead_letter_stream: Stream receiving jobs that exhausted their attempts
            max_attempts: Deliveries allowed before dead-lettering
            reclaim_idle_ms: Idle time after which another consumer's pending
                entry may be taken over
        """
        self._client = client
        self._stream = stream
        self._group = group
        self._dead_letter_stream = dead_letter_stream
        self._max_attempts = max_attempts
        self._reclaim_idle_ms = reclaim_idle_ms
        self._group_ready = False

    async def ensure_group(self) -> None:
        """Create the stream and consumer group if they do not exist."""
        if self._group_ready:
            return
        try:
            await self._client.xgroup_create(self._stream, self._group, id="0", mkstream=True)
        except redis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise ExternalServiceError(_SERVICE, str(e)) from e
        self._group_ready = True

    async def send_batch(self, jobs: Sequence[BillingJob]) -> None:
        """Add every job to the stream in one MULTI/EXEC."""
        if not jobs:
            return
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                for job in jobs:
                    pipe.xadd(self._stream, self._encode(job, attempt=1))
                await pipe.execute()
        except redis.RedisError as e:
            raise ExternalServiceError(_SERVICE, f"Failed to publish {len(jobs)} jobs: {e}") from e

    async def receive(self, consumer: str, count: int, block_ms: int) -> list[QueuedJob]:
        """Take over stale pending entries first, then read new ones."""
        await self.ensure_group()
        try:
            entries = await self._reclaim(consumer, count)
            if len(entries) < count:
                response = await self._client.xreadgroup(
                    self._group,
                    consumer,
                    {self._stream: ">"},
                    count=count - len(entries),
                    block=block_ms,
                )
                for _stream, stream_entries in response or []:
                    entries.extend(stream_entries)
        except redis.RedisError as e:
            raise ExternalServiceError(_SERVICE, f"Failed to read jobs: {e}") from e

        received: list[QueuedJob] = []
        for message_id, fields in entries:
            decoded = await self._decode(message_id, fields)
            if decoded is not None:
                received.append(decoded)
        return received

    async def ack(self, message: QueuedJob) -> None:
        """Acknowledge and delete the entry."""
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.xack(self._stream, self._group, message.message_id)
                pipe.xdel(self._stream, message.message_id)
                await pipe.execute()
        except redis.RedisError as e:
            raise ExternalServiceError(_SERVICE, f"Failed to ack {message.message_id}: {e}") from e

    async def retry(self, message: QueuedJob, reason: str) -> bool:
        """Re-add the job with a higher attempt count, or dead-letter it."""
        requeue = message.attempt < self._max_attempts
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                if requeue:
                    pipe.xadd(self._stream, self._encode(message.job, attempt=message.attempt + 1))
                else:
                    fields = self._encode(message.job, attempt=message.attempt)
                    fields["reason"] = reason[:500]
                    pipe.xadd(self._dead_letter_stream, fields)
                pipe.xack(self._stream, self._group, message.message_id)
                pipe.xdel(self._stream, message.message_id)
                await pipe.execute()
        except redis.RedisError as e:
            raise ExternalServiceError(
                _SERVICE, f"Failed to retry {message.message_id}: {e}"
            ) from e

        if not requeue:
            logger.error(
                "Job %s dead-lettered after %d attempts: %s",
                message.job.job_id,
                message.attempt,
                reason,
            )
        return requeue

    async def _reclaim(self, consumer: str, count: int) -> list[tuple[str, dict[str, Any]]]:
        if self._reclaim_idle_ms <= 0:
            return []
        response = await self._client.xautoclaim(
            self._stream,
            self._group,
            consumer,
            min_idle_time=self._reclaim_idle_ms,
            start_id="0-0",
            count=count,
        )
        # [next_start_id, [(id, fields), ...], deleted_ids]
        claimed = response[1] if response and len(response) > 1 else []
        return [(message_id, fields) for message_id, fields in claimed if fields]

    async def _decode(self, message_id: str, fields: dict[str, Any]) -> Optional[QueuedJob]:
        try:
            job = BillingJob.model_validate_json(fields["payload"])
            attempt = int(fields.get("attempt", 1))
        except (KeyError, ValueError, ValidationError) as e:
            logger.error("Dropping malformed job entry %s: %s", message_id, e)
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.xadd(self._dead_letter_stream, {**fields, "reason": f"malformed: {e}"[:500]})
                pipe.xack(self._stream, self._group, message_id)
                pipe.xdel(self._stream, message_id)
                await pipe.execute()
            return None
        return QueuedJob(message_id=message_id, job=job, attempt=attempt)

    @staticmethod
    def _encode(job: BillingJob, attempt: int) -> dict[str, str]:
        return {"payload": job.model_dump_json(), "attempt": str(attempt)}

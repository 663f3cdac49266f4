"""Billing job queue adapters: Redis Streams and Fake implementations."""

from ledgerflow.adapters.job_queue.fake import FakeBillingJobQueue
from ledgerflow.adapters.job_queue.redis import RedisStreamBillingJobQueue

__all__ = ["FakeBillingJobQueue", "RedisStreamBillingJobQueue"]

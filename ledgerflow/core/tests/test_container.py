"""Tests for container construction and the global container lifecycle."""

import pytest

from ledgerflow.adapters.job_queue import FakeBillingJobQueue, RedisStreamBillingJobQueue
from ledgerflow.adapters.metrics import PrometheusBillingMetrics
from ledgerflow.core import container as container_mod
from ledgerflow.core.config import Settings
from ledgerflow.core.container import create_container


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_memory_backend_wires_fake_queue():
    container = create_container(_settings(BILLING_JOB_QUEUE_BACKEND="memory"))

    assert isinstance(container.job_queue, FakeBillingJobQueue)
    assert isinstance(container.metrics, PrometheusBillingMetrics)


def test_redis_backend_wires_stream_queue():
    container = create_container(_settings(BILLING_JOB_QUEUE_BACKEND="redis"))

    assert isinstance(container.job_queue, RedisStreamBillingJobQueue)


def test_replace_returns_new_container(fake_job_queue):
    container = create_container(_settings(BILLING_JOB_QUEUE_BACKEND="memory"))

    modified = container.replace(job_queue=fake_job_queue)

    assert modified.job_queue is fake_job_queue
    assert container.job_queue is not fake_job_queue
    assert modified.ledger is container.ledger


def test_initialize_twice_raises():
    container_mod.reset_container()
    try:
        container_mod.initialize_container(_settings(BILLING_JOB_QUEUE_BACKEND="memory"))
        assert container_mod.container is not None
        with pytest.raises(RuntimeError):
            container_mod.initialize_container(_settings(BILLING_JOB_QUEUE_BACKEND="memory"))
    finally:
        container_mod.reset_container()

"""Root conftest for pytest configuration and shared fixtures.

Loaded before both tests/ and the colocated ledgerflow/**/tests packages,
so its fixtures are available everywhere.
"""

import os
from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any ledgerflow module import.
# setdefault so real env vars (CI, integration) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("BILLING_JOB_QUEUE_BACKEND", "memory")


@asynccontextmanager
async def _fake_db_context():
    yield AsyncMock()


# ---------------------------------------------------------------------------
# Shared fake fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_db_context():
    """Patch get_db_context so services run against in-memory repositories."""
    with patch("ledgerflow.db.session.get_db_context", _fake_db_context):
        yield


@pytest.fixture
def fake_usage_event_repo():
    from ledgerflow.domains.usage_events.fakes.repository import FakeUsageEventRepository

    return FakeUsageEventRepository()


@pytest.fixture
def fake_ledger_repo():
    from ledgerflow.domains.ledger.fakes.repository import FakeLedgerRepository

    return FakeLedgerRepository()


@pytest.fixture
def fake_job_queue():
    """Fake BillingJobQueue that records sent jobs."""
    from ledgerflow.adapters.job_queue.fake import FakeBillingJobQueue

    return FakeBillingJobQueue()


@pytest.fixture
def fake_billing_metrics():
    """Fake BillingMetrics that counts calls."""
    from ledgerflow.adapters.metrics.billing import FakeBillingMetrics

    return FakeBillingMetrics()


@pytest.fixture
def fake_metrics_renderer():
    from ledgerflow.adapters.metrics.renderer import FakeMetricsRenderer

    return FakeMetricsRenderer()


@pytest.fixture
def test_container(
    fake_db_context,
    fake_usage_event_repo,
    fake_ledger_repo,
    fake_job_queue,
    fake_billing_metrics,
    fake_metrics_renderer,
):
    """A Container of real services over in-memory repositories and fakes.

    For partial overrides, use container.replace():
        modified = test_container.replace(job_queue=other_queue)
    """
    from ledgerflow.core.container import Container
    from ledgerflow.domains.billing.commands import BillingCommandHandler
    from ledgerflow.domains.billing.orchestrator import BillingOrchestrator
    from ledgerflow.domains.billing.reconciliation import BatchReconciler
    from ledgerflow.domains.billing.settlement import BillingJobSettler
    from ledgerflow.domains.ledger.debit_engine import LedgerDebitEngine
    from ledgerflow.domains.usage_events.ingestion import GatewayLogParser, UsageEventIngestor
    from ledgerflow.domains.usage_events.service import UsageEventService

    store = UsageEventService(repository=fake_usage_event_repo)
    ledger = LedgerDebitEngine(repository=fake_ledger_repo)
    reconciler = BatchReconciler(store=store, ledger=ledger, metrics=fake_billing_metrics)
    orchestrator = BillingOrchestrator(
        store=store,
        ledger=ledger,
        queue=fake_job_queue,
        reconciler=reconciler,
        metrics=fake_billing_metrics,
        stale_claim_after=timedelta(minutes=15),
    )

    return Container(
        store=store,
        ledger=ledger,
        job_queue=fake_job_queue,
        metrics=fake_billing_metrics,
        renderer=fake_metrics_renderer,
        reconciler=reconciler,
        orchestrator=orchestrator,
        settler=BillingJobSettler(ledger=ledger, store=store, metrics=fake_billing_metrics),
        command_handler=BillingCommandHandler(
            store=store, ledger=ledger, orchestrator=orchestrator
        ),
        ingestor=UsageEventIngestor(store=store, parser=GatewayLogParser()),
    )

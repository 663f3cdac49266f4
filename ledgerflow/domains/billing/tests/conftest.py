"""Billing domain test fixtures.

Wires the real usage event service and debit engine over in-memory
repositories, with a fake job queue and fake metrics.
"""

from datetime import timedelta

import pytest

from ledgerflow.adapters.job_queue.fake import FakeBillingJobQueue
from ledgerflow.adapters.metrics.billing import FakeBillingMetrics
from ledgerflow.domains.billing.commands import BillingCommandHandler
from ledgerflow.domains.billing.orchestrator import BillingOrchestrator
from ledgerflow.domains.billing.reconciliation import BatchReconciler
from ledgerflow.domains.billing.settlement import BillingJobSettler
from ledgerflow.domains.ledger.debit_engine import LedgerDebitEngine
from ledgerflow.domains.ledger.fakes.repository import FakeLedgerRepository
from ledgerflow.domains.usage_events.fakes.repository import FakeUsageEventRepository
from ledgerflow.domains.usage_events.service import UsageEventService

ORG_A = "org-a"
ORG_B = "org-b"
ORG_C = "org-c"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fake_db(fake_db_context):
    yield


@pytest.fixture
def event_repo():
    return FakeUsageEventRepository()


@pytest.fixture
def ledger_repo():
    return FakeLedgerRepository()


@pytest.fixture
def store(event_repo):
    return UsageEventService(repository=event_repo, claim_batch_size=1000)


@pytest.fixture
def ledger(ledger_repo):
    return LedgerDebitEngine(repository=ledger_repo)


@pytest.fixture
def queue():
    return FakeBillingJobQueue()


@pytest.fixture
def metrics():
    return FakeBillingMetrics()


@pytest.fixture
def reconciler(store, ledger, metrics):
    return BatchReconciler(store=store, ledger=ledger, metrics=metrics)


@pytest.fixture
def orchestrator(store, ledger, queue, reconciler, metrics):
    return BillingOrchestrator(
        store=store,
        ledger=ledger,
        queue=queue,
        reconciler=reconciler,
        metrics=metrics,
        claim_batch_size=1000,
        publish_chunk_size=2,
        stale_claim_after=timedelta(minutes=15),
    )


@pytest.fixture
def settler(ledger, store, metrics):
    return BillingJobSettler(ledger=ledger, store=store, metrics=metrics)


@pytest.fixture
def handler(store, ledger, orchestrator):
    return BillingCommandHandler(store=store, ledger=ledger, orchestrator=orchestrator)
